"""Main application entry point for the OpenVPN exporter."""

import argparse
import logging
import os
import signal
import sys
import threading
from typing import Optional

from prometheus_client import CollectorRegistry, generate_latest, start_http_server

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .collectors.openvpn_collector import OpenVPNCollector
from .exceptions import ConfigError
from .exposition import OpenVPNMetricsAdapter
from .utils.logger import setup_logger


class ExporterApp:
    """
    OpenVPN exporter application.

    Wires configuration, the collector and the HTTP exposition endpoint
    together and handles graceful shutdown.
    """

    def __init__(
        self,
        config: ExporterConfig,
        registry: Optional[CollectorRegistry] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize exporter application.

        Args:
            config: Effective exporter configuration
            registry: Registry to expose, a fresh one by default
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or setup_logger("ovpn_exporter", config.logging.level)
        self.registry = registry or CollectorRegistry()
        self._stop = threading.Event()

        self.collector = OpenVPNCollector(config.targets, config.collector, self.logger)
        self.adapter = OpenVPNMetricsAdapter(
            self.collector,
            timeout=config.collector.scrape_timeout_seconds,
            logger=self.logger
        )
        self.registry.register(self.adapter)

        self.logger.info(
            f"Configured {len(config.targets)} OpenVPN socket(s)",
            extra={"vpn_labels": [target.label for target in config.targets]}
        )

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        self._stop.set()

    def run_once(self) -> bool:
        """
        Run one poll cycle and print the exposition text.

        Returns:
            bool: True if every target is up
        """
        output = generate_latest(self.registry)
        sys.stdout.write(output.decode("utf-8"))
        return all(outcome.is_up for outcome in self.adapter.last_outcomes)

    def serve(self):
        """Serve /metrics until SIGTERM or SIGINT."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        address = self.config.server.listen_address
        port = self.config.server.port
        start_http_server(port, addr=address, registry=self.registry)
        self.logger.info(f"Serving metrics on http://{address}:{port}/metrics")

        self._stop.wait()
        self.logger.info("Exporter stopped")


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for OpenVPN management interfaces',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve metrics for two servers
  ovpn-exporter --sockets udp:/run/openvpn/udp.sock,tcp:/run/openvpn/tcp.sock

  # Poll once, print metrics and exit
  ovpn-exporter --sockets main:/run/openvpn/server.sock --run-once

  # Use a configuration file
  ovpn-exporter --config /etc/ovpn-exporter/config.yaml
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--sockets',
        default=None,
        help='Unix socket files to read metrics from. '
             'Format: label1:/file1,label2:/file2,...,labelN:/fileN'
    )

    parser.add_argument(
        '--listen-address',
        default=None,
        help='Address to serve metrics on (default: 0.0.0.0)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Port to serve metrics on (default: 9176)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Poll once, print metrics and exit'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()
    logger = setup_logger("ovpn_exporter", args.log_level or "INFO")

    try:
        config = ConfigLoader.load(
            config_path=args.config,
            sockets=args.sockets,
            port=args.port,
            log_level=args.log_level,
            logger=logger
        )
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"Failed to configure openvpn collector: {e}")
        sys.exit(1)

    if args.listen_address:
        config.server.listen_address = args.listen_address

    logger.setLevel(config.logging.level)
    app = ExporterApp(config, logger=logger)

    if args.run_once:
        sys.exit(0 if app.run_once() else 1)

    app.serve()


if __name__ == '__main__':
    main()
