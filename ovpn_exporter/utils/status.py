"""Poll status enumeration."""

from enum import Enum


class PollStatus(Enum):
    """Outcome of polling one OpenVPN management interface."""

    UP = "up"
    DOWN = "down"

    def to_gauge_value(self) -> float:
        """
        Convert status to the value exported by openvpn_up.

        Returns:
            float: 1.0 when the poll succeeded, 0.0 otherwise
        """
        return {
            PollStatus.UP: 1.0,
            PollStatus.DOWN: 0.0
        }[self]
