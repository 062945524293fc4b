"""Parsing of the label:path socket mapping."""

import logging
from typing import Dict, List, Optional

from ..exceptions import ConfigError
from .models import ServerTarget


ENTRY_SEPARATOR = ","
PART_SEPARATOR = ":"


def parse_sockets(value: Optional[str], logger: Optional[logging.Logger] = None) -> Dict[str, str]:
    """
    Parse a socket mapping of the form ``label1:/path1,label2:/path2``.

    Args:
        value: Mapping string, may be empty
        logger: Optional logger for duplicate label warnings

    Returns:
        Dict[str, str]: label -> socket path

    Raises:
        ConfigError: If an entry does not split into exactly two non-empty parts
    """
    logger = logger or logging.getLogger(__name__)
    sockets: Dict[str, str] = {}

    if value is None or not value.strip():
        return sockets

    for entry in value.strip().split(ENTRY_SEPARATOR):
        parts = entry.strip().split(PART_SEPARATOR)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ConfigError(
                f"Malformed socket entry {entry!r}: expected label:path"
            )

        label, path = parts
        if label in sockets:
            logger.warning(
                f"Duplicate socket label {label!r}, using {path!r}",
                extra={"vpn_label": label}
            )
        sockets[label] = path

    return sockets


def build_targets(value: Optional[str], logger: Optional[logging.Logger] = None) -> List[ServerTarget]:
    """
    Build the target list from a socket mapping string, sorted by label.

    Raises:
        ConfigError: If the mapping is malformed
    """
    sockets = parse_sockets(value, logger)
    return [
        ServerTarget(label=label, socket_path=path)
        for label, path in sorted(sockets.items())
    ]
