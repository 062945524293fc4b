"""OpenVPN management interface collector."""

import asyncio
import time
from typing import List, Optional
import logging

from ..config.models import CollectorConfig, ServerTarget
from ..exceptions import PollError
from ..utils.status import PollStatus
from ..utils.metrics import PollOutcome, ServerSnapshot
from .base import BaseCollector, safe_collect
from .management_client import ManagementClient
from .parsers import iter_state, parse_stats


# Targets are skipped once less than this remains of the scrape deadline
MIN_POLL_SECONDS = 0.01


class OpenVPNCollector(BaseCollector):
    """Collector for OpenVPN server state and load statistics."""

    def __init__(
        self,
        targets: List[ServerTarget],
        config: Optional[CollectorConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize OpenVPN collector.

        Args:
            targets: Management interfaces to poll
            config: Timeouts; defaults apply when omitted
            logger: Logger instance
        """
        super().__init__(targets, logger or logging.getLogger(__name__))
        self.config = config or CollectorConfig()
        self._lock = asyncio.Lock()

    @safe_collect
    async def update(self, timeout: Optional[float] = None) -> List[PollOutcome]:
        """
        Poll all targets, one after the other.

        Args:
            timeout: Deadline in seconds for the whole cycle, defaults to
                the configured scrape timeout

        Returns:
            List[PollOutcome]: One outcome per target, in target order
        """
        if not self.targets:
            self.logger.debug("No OpenVPN sockets configured")
            return []

        timeout = timeout if timeout is not None else self.config.scrape_timeout_seconds

        async with self._lock:
            deadline = None
            if timeout is not None:
                deadline = asyncio.get_running_loop().time() + timeout

            outcomes = [await self._poll_target(target, deadline) for target in self.targets]

        down = [outcome.label for outcome in outcomes if not outcome.is_up]
        self.logger.info(
            f"Polled {len(outcomes)} OpenVPN server(s), {len(down)} down",
            extra={"targets": len(outcomes), "down": down}
        )
        return outcomes

    async def _poll_target(self, target: ServerTarget, deadline: Optional[float]) -> PollOutcome:
        """
        Poll a single management interface.

        Failures are contained here: the outcome is DOWN and the snapshot keeps
        whatever was parsed before the failure.
        """
        start_time = time.time()
        snapshot = ServerSnapshot()

        if deadline is not None and deadline - asyncio.get_running_loop().time() < MIN_POLL_SECONDS:
            self.logger.warning("Scrape deadline exceeded, skipping", extra={"vpn_label": target.label})
            return PollOutcome(
                label=target.label,
                status=PollStatus.DOWN,
                snapshot=snapshot,
                error="Scrape deadline exceeded",
                duration_seconds=0.0
            )

        try:
            async with ManagementClient(
                target,
                connect_timeout=self.config.connect_timeout_seconds,
                io_timeout=self.config.io_timeout_seconds,
                deadline=deadline,
                logger=self.logger
            ) as client:
                state = await client.state()
                self._publish_state(state, snapshot)

                stats = await client.load_stats()
                self._publish_stats(stats, snapshot)

        except PollError as e:
            e.label = target.label
            self.logger.warning(
                f"Polling {target.label} failed: {e}",
                extra={"vpn_label": target.label, "error_type": type(e).__name__}
            )
            return PollOutcome(
                label=target.label,
                status=PollStatus.DOWN,
                snapshot=snapshot,
                error=str(e),
                duration_seconds=time.time() - start_time
            )

        self.logger.debug(f"Polled {target.label}", extra={"vpn_label": target.label})
        return PollOutcome(
            label=target.label,
            status=PollStatus.UP,
            snapshot=snapshot,
            duration_seconds=time.time() - start_time
        )

    @staticmethod
    def _publish_state(state: str, snapshot: ServerSnapshot) -> None:
        """Record up-since values as they parse; the last good line wins."""
        for up_since in iter_state(state):
            snapshot.up_since_unix_seconds = up_since

    @staticmethod
    def _publish_stats(stats: str, snapshot: ServerSnapshot) -> None:
        """Record load statistics. ParseError leaves all three fields unset."""
        fields = parse_stats(stats)

        snapshot.connected_clients = fields.clients
        snapshot.bytes_received = fields.bytes_in
        snapshot.bytes_sent = fields.bytes_out
