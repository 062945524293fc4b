"""Client for the OpenVPN management interface over a UNIX socket."""

import asyncio
import logging
from typing import Optional

from ..config.models import ServerTarget
from ..exceptions import ConnectError, ProtocolIOError
from .parsers import END_SENTINEL, strip_info_lines


STATE_COMMAND = "state\n"
LOAD_STATS_COMMAND = "load-stats\n"

READ_CHUNK_SIZE = 1024
DEFAULT_CONNECT_TIMEOUT = 3.0
DEFAULT_IO_TIMEOUT = 3.0


class ManagementClient:
    """
    One short-lived connection to a management interface.

    ``state`` replies are read until the END sentinel line, ``load-stats``
    replies until the first non-empty chunk: the latter is a single-line
    synchronous answer with no sentinel.

    Usage:
        async with ManagementClient(target) as client:
            state = await client.state()
            stats = await client.load_stats()
    """

    def __init__(
        self,
        target: ServerTarget,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        io_timeout: float = DEFAULT_IO_TIMEOUT,
        deadline: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            target: Management interface to connect to
            connect_timeout: Seconds allowed for connecting
            io_timeout: Seconds allowed for each read or write
            deadline: Absolute event loop time after which every operation fails
            logger: Optional logger instance
        """
        self.target = target
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.deadline = deadline
        self.logger = logger or logging.getLogger(__name__)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def __aenter__(self) -> "ManagementClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _timeout(self, op_timeout: float) -> float:
        """Per-operation timeout, capped by the remaining deadline."""
        if self.deadline is None:
            return op_timeout
        remaining = self.deadline - asyncio.get_running_loop().time()
        return max(0.0, min(op_timeout, remaining))

    async def connect(self) -> None:
        """
        Open the socket.

        Raises:
            ConnectError: If the socket is unreachable or the connect times out
        """
        label = self.target.label
        self.logger.debug(f"Connecting to {self.target.socket_path}", extra={"vpn_label": label})

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_unix_connection(self.target.socket_path),
                timeout=self._timeout(self.connect_timeout)
            )
        except asyncio.TimeoutError:
            raise ConnectError(
                f"Timed out connecting to {self.target.socket_path}", label=label
            ) from None
        except OSError as e:
            raise ConnectError(
                f"Failed to connect to {self.target.socket_path}: {e}", label=label
            ) from e

    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return

        try:
            writer.close()
            await writer.wait_closed()
            self.logger.debug("Management connection closed", extra={"vpn_label": self.target.label})
        except OSError as e:
            self.logger.warning(
                f"Error closing management connection: {e}",
                extra={"vpn_label": self.target.label}
            )

    async def state(self) -> str:
        """Run ``state`` and return the reply up to and including END."""
        return await self.send_command(STATE_COMMAND)

    async def load_stats(self) -> str:
        """Run ``load-stats`` and return the single-line reply."""
        return await self.send_command(LOAD_STATS_COMMAND)

    async def send_command(self, command: str) -> str:
        """
        Write a command and read its reply.

        Args:
            command: STATE_COMMAND or LOAD_STATS_COMMAND

        Returns:
            str: Reply text with complete >INFO lines removed

        Raises:
            ValueError: For unsupported commands
            ProtocolIOError: On write/read failure, timeout or premature EOF
        """
        if command not in (STATE_COMMAND, LOAD_STATS_COMMAND):
            raise ValueError(f"Unsupported management command: {command!r}")
        if self._writer is None:
            raise ProtocolIOError("Not connected", label=self.target.label)

        label = self.target.label
        name = command.strip()

        try:
            self._writer.write(command.encode("ascii"))
            await asyncio.wait_for(self._writer.drain(), timeout=self._timeout(self.io_timeout))

            data = ""
            while True:
                chunk = await asyncio.wait_for(
                    self._reader.read(READ_CHUNK_SIZE),
                    timeout=self._timeout(self.io_timeout)
                )
                if not chunk:
                    raise ProtocolIOError(
                        f"Connection closed before {name} reply completed", label=label
                    )

                data = strip_info_lines(data + chunk.decode("utf-8", errors="replace"))

                if command == LOAD_STATS_COMMAND:
                    if data:
                        break
                elif self._is_terminated(data):
                    break

        except asyncio.TimeoutError:
            raise ProtocolIOError(f"Timed out waiting for {name} reply", label=label) from None
        except OSError as e:
            raise ProtocolIOError(f"I/O error during {name}: {e}", label=label) from e

        self.logger.debug(f"{name} reply: {len(data)} bytes", extra={"vpn_label": label})
        return data

    @staticmethod
    def _is_terminated(data: str) -> bool:
        """True once the buffer ends with a complete END line."""
        for sentinel in (END_SENTINEL + "\r\n", END_SENTINEL + "\n"):
            if data == sentinel or data.endswith("\n" + sentinel):
                return True
        return False
