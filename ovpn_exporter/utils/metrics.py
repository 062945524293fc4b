"""Data structures produced by one poll cycle."""

from dataclasses import dataclass, field
from typing import Optional
import time
from .status import PollStatus


@dataclass
class ServerSnapshot:
    """Parsed values of one poll. Fields are None when their source line could not be parsed."""

    up_since_unix_seconds: Optional[int] = None
    connected_clients: Optional[int] = None
    bytes_received: Optional[int] = None
    bytes_sent: Optional[int] = None


@dataclass
class PollOutcome:
    """Result of polling a single target, produced for every target on every cycle."""

    label: str
    status: PollStatus
    snapshot: ServerSnapshot = field(default_factory=ServerSnapshot)
    error: Optional[str] = None
    duration_seconds: Optional[float] = None
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()

    @property
    def is_up(self) -> bool:
        """True when the poll succeeded."""
        return self.status is PollStatus.UP
