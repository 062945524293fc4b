"""Base collector abstract class."""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging
from functools import wraps

from ..config.models import ServerTarget
from ..utils.status import PollStatus
from ..utils.metrics import PollOutcome


class BaseCollector(ABC):
    """Abstract base class for collectors that poll a fixed set of targets."""

    def __init__(self, targets: List[ServerTarget], logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            targets: Targets to poll, in polling order
            logger: Logger instance
        """
        self.targets = list(targets)
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def update(self, timeout: Optional[float] = None) -> List[PollOutcome]:
        """
        Poll every target once.

        Args:
            timeout: Optional deadline in seconds for the whole cycle

        Returns:
            List[PollOutcome]: Exactly one outcome per target

        Note:
            Implementations should use @safe_collect so an unexpected error
            still yields a DOWN outcome per target.
        """
        pass


def safe_collect(func):
    """
    Decorator to turn unexpected collector exceptions into DOWN outcomes.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped function that never raises Exception
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(f"Collection failed: {e}", exc_info=True)
            return [
                PollOutcome(
                    label=target.label,
                    status=PollStatus.DOWN,
                    error=f"Collection error: {e}"
                )
                for target in self.targets
            ]
    return wrapper
