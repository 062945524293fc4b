"""Prometheus exposition of poll outcomes."""

import asyncio
import logging
import threading
from typing import Dict, Iterable, Iterator, List, Optional

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from .collectors.base import BaseCollector
from .utils.metrics import PollOutcome


NAMESPACE = "openvpn"
LABEL_NAME = "vpn_label"

# metric suffix -> (help text, ServerSnapshot attribute)
SNAPSHOT_METRICS = {
    "up_since_time_seconds": (
        "UNIX timestamp at which the OpenVPN server were started.",
        "up_since_unix_seconds",
    ),
    "clients_number": ("Total connected clients count.", "connected_clients"),
    "bytes_in": ("Total received bytes.", "bytes_received"),
    "bytes_out": ("Total sent bytes.", "bytes_sent"),
}
UP_HELP = "Whether scraping OpenVPN's metrics was successful."


def metric_name(suffix: str) -> str:
    return f"{NAMESPACE}_{suffix}"


def build_metric_families(outcomes: Iterable[PollOutcome]) -> List[GaugeMetricFamily]:
    """
    Convert poll outcomes into gauge families.

    openvpn_up gets one sample per outcome. The snapshot gauges only get a
    sample for fields that were parsed; absence means unknown, not zero.
    """
    up = GaugeMetricFamily(metric_name("up"), UP_HELP, labels=[LABEL_NAME])
    families: Dict[str, GaugeMetricFamily] = {
        suffix: GaugeMetricFamily(metric_name(suffix), help_text, labels=[LABEL_NAME])
        for suffix, (help_text, _) in SNAPSHOT_METRICS.items()
    }

    for outcome in outcomes:
        up.add_metric([outcome.label], outcome.status.to_gauge_value())
        for suffix, (_, attribute) in SNAPSHOT_METRICS.items():
            value = getattr(outcome.snapshot, attribute)
            if value is not None:
                families[suffix].add_metric([outcome.label], float(value))

    return [up] + [family for family in families.values() if family.samples]


class OpenVPNMetricsAdapter(Collector):
    """
    prometheus_client collector that polls on every scrape.

    Scrapes are serialized; each one runs the collector's update on its own
    event loop in the calling (HTTP server) thread.
    """

    def __init__(
        self,
        collector: BaseCollector,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.collector = collector
        self.timeout = timeout
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._scrape_lock = threading.Lock()
        self.last_outcomes: List[PollOutcome] = []

    def poll(self) -> List[PollOutcome]:
        """Run one update cycle synchronously."""
        with self._scrape_lock:
            outcomes = asyncio.run(self.collector.update(timeout=self.timeout))
            self.last_outcomes = outcomes
        self.logger.debug(f"Scrape polled {len(outcomes)} target(s)")
        return outcomes

    def collect(self) -> Iterator[GaugeMetricFamily]:
        yield from build_metric_families(self.poll())

    def describe(self) -> Iterator[GaugeMetricFamily]:
        # registration must not poll the sockets
        yield GaugeMetricFamily(metric_name("up"), UP_HELP, labels=[LABEL_NAME])
        for suffix, (help_text, _) in SNAPSHOT_METRICS.items():
            yield GaugeMetricFamily(metric_name(suffix), help_text, labels=[LABEL_NAME])
