"""Parsers for OpenVPN management interface responses."""

import re
from dataclasses import dataclass
from typing import Iterator

from ..exceptions import ParseError


INFO_PREFIX = ">INFO"
CLIENT_PREFIX = ">CLIENT"
END_SENTINEL = "END"
SUCCESS_PREFIX = "SUCCESS: "
ERROR_PREFIX = "ERROR:"

STATS_FIELDS = ("nclients", "bytesin", "bytesout")

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass
class StatsFields:
    """Values reported by ``load-stats``."""

    clients: int
    bytes_in: int
    bytes_out: int


def parse_int64(text: str) -> int:
    """
    Parse a signed decimal that fits in 64 bits.

    Raises:
        ValueError: If the text is not a plain decimal or is out of range
    """
    text = text.strip()
    if not _DECIMAL.fullmatch(text):
        raise ValueError(f"not a decimal integer: {text[:32]!r}")
    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"out of int64 range: {text[:32]!r}")
    return value


def strip_info_lines(data: str) -> str:
    """
    Remove complete ``>INFO`` notification lines from a buffer.

    A trailing line without its terminator is kept, it may be completed by the
    next read.
    """
    lines = data.splitlines(keepends=True)
    return "".join(
        line for line in lines
        if not (line.startswith(INFO_PREFIX) and line.endswith("\n"))
    )


def iter_state(payload: str) -> Iterator[int]:
    """
    Yield the server start timestamp of every data line in a ``state`` response.

    Example payload:
        1434651012,CONNECTED,SUCCESS,10.8.0.1,,,,
        END

    Values are yielded as they are parsed, so values from lines preceding a
    malformed one have already been handed out when ParseError is raised.

    Raises:
        ParseError: If a data line does not start with an int64 field
    """
    for line in payload.split("\n"):
        if not line.strip():
            continue

        first = line.split(",")[0]
        if first.startswith((INFO_PREFIX, END_SENTINEL, CLIENT_PREFIX)):
            continue

        try:
            yield parse_int64(first)
        except ValueError:
            raise ParseError(
                f"Cannot parse up-since timestamp from state line: {line.strip()!r}",
                line=line
            ) from None


def parse_stats(payload: str) -> StatsFields:
    """
    Parse a ``load-stats`` response.

    Example payload:
        SUCCESS: nclients=5,bytesin=1024,bytesout=2048

    Fields are matched by name, unknown fields are ignored. Either all three
    values are returned or ParseError is raised.

    Raises:
        ParseError: On an ERROR reply, a missing field, or a non-numeric or out-of-range value
    """
    line = payload.strip()
    if line.startswith(ERROR_PREFIX):
        raise ParseError(f"load-stats failed: {line[len(ERROR_PREFIX):].strip()}", line=line)

    if line.startswith(SUCCESS_PREFIX.strip()):
        line = line[len(SUCCESS_PREFIX.strip()):].strip()

    values = {}
    for part in line.split(","):
        key, sep, value = part.partition("=")
        if sep:
            values[key.strip()] = value.strip()

    parsed = {}
    for name in STATS_FIELDS:
        if name not in values:
            raise ParseError(f"Missing {name} in load-stats response: {line!r}", line=line)
        try:
            parsed[name] = parse_int64(values[name])
        except ValueError:
            raise ParseError(
                f"Cannot parse {name} from load-stats response: {values[name][:32]!r}",
                line=line
            ) from None

    return StatsFields(
        clients=parsed["nclients"],
        bytes_in=parsed["bytesin"],
        bytes_out=parsed["bytesout"]
    )
