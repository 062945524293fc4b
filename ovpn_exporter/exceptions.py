"""Exception hierarchy for the OpenVPN exporter."""

from typing import Optional


class OpenVPNExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(OpenVPNExporterError):
    """Invalid exporter configuration. Raised at startup only."""


class PollError(OpenVPNExporterError):
    """Runtime failure while polling one management interface."""

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label


class ConnectError(PollError):
    """Management socket could not be reached."""


class ProtocolIOError(PollError):
    """Read or write on the management socket failed."""


class ParseError(PollError):
    """A response line did not have the expected shape."""

    def __init__(self, message: str, line: Optional[str] = None, label: Optional[str] = None):
        super().__init__(message, label=label)
        self.line = line
