"""TCP control channel to a NetSDR receiver.

The transport knows nothing about the protocol: it moves whole byte
strings. One ``read()`` is one ``recv()``; responses are expected to
arrive in a single segment.
"""

from __future__ import annotations

import logging
import socket
from typing import Protocol, runtime_checkable

from ..defaults import CONNECT_TIMEOUT, READ_BUFFER_SIZE, READ_TIMEOUT, TCP_PORT

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Surface the device client needs from a control channel."""

    @property
    def connected(self) -> bool: ...

    def open(self, host: str, port: int = TCP_PORT) -> None: ...

    def close(self) -> None: ...

    def write(self, data: bytes) -> int: ...

    def read(self) -> bytes: ...


class TcpConnection:
    """Manages the TCP socket to the receiver.

    Usage::

        conn = TcpConnection()
        conn.open("192.168.1.50")
        conn.write(frame_bytes)
        response = conn.read()
        conn.close()
    """

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float | None = READ_TIMEOUT,
        buffer_size: int = READ_BUFFER_SIZE,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._buffer_size = buffer_size
        self._sock: socket.socket | None = None
        self._peer: tuple[str, int] | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def peer(self) -> tuple[str, int] | None:
        return self._peer

    def open(self, host: str, port: int = TCP_PORT) -> None:
        """Connect to *host*:*port*.

        Raises:
            ConnectionError: If the socket cannot be connected.
        """
        if self._sock is not None:
            raise ConnectionError("Transport is already open")

        try:
            sock = socket.create_connection((host, port), timeout=self._connect_timeout)
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to NetSDR at {host}:{port}. Last error: {e}"
            ) from e

        sock.settimeout(self._read_timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._sock = sock
        self._peer = (host, port)
        logger.info("TCP connected to %s:%d", host, port)

    def close(self) -> None:
        """Close the socket. Safe to call when already closed."""
        if self._sock is None:
            return

        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            logger.info("TCP disconnected from %s:%d", *self._peer)
            self._peer = None

    def write(self, data: bytes) -> int:
        """Send *data* in full.

        Raises:
            ConnectionError: If not connected.
            OSError: If the send fails.
        """
        if self._sock is None:
            raise ConnectionError("Not connected")
        logger.debug("TX: %s", data.hex(" "))
        self._sock.sendall(data)
        return len(data)

    def read(self) -> bytes:
        """Receive one chunk of up to ``buffer_size`` bytes.

        Returns:
            The received bytes, or ``b""`` if the peer closed the connection.

        Raises:
            ConnectionError: If not connected.
            TimeoutError: If nothing arrives within the read timeout.
        """
        if self._sock is None:
            raise ConnectionError("Not connected")
        data = self._sock.recv(self._buffer_size)
        logger.debug("RX: %s", data.hex(" ") if data else "(empty)")
        return data
