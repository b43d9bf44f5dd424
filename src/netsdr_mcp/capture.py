"""UDP IQ capture: receive data packets and write their payload to a file.

Each datagram is::

    +----------+-----------------+--------------------+
    |  Header  | Sequence number |   I/Q sample data  |
    |  2 bytes |  2 bytes (LE)   |      variable      |
    +----------+-----------------+--------------------+

Only the sample data is written, concatenated in arrival order.
"""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from .defaults import HEADER_SIZE, RECEIVE_POLL_INTERVAL, UDP_BUFFER_SIZE, UDP_PORT
from .errors import AlreadyRunningError, CaptureError
from .protocol.helpers import is_start_of_transmission, sequence_number

logger = logging.getLogger(__name__)

SOCKET_RCVBUF = 4 * 1024 * 1024


class CaptureState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class CaptureStats:
    """Counters maintained by the receive loop."""

    packets: int = 0
    bytes_written: int = 0
    short_packets: int = 0
    sequence_gaps: int = 0
    transmissions: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class IqCapturePipeline:
    """Receives IQ data packets on a UDP port and appends their payload to a file.

    An instance is single-use: ``start()`` once, ``stop()`` once, then
    discard it. The UDP socket is bound on construction so a port conflict
    surfaces before any command is sent.

    Usage::

        pipeline = IqCapturePipeline("iq_data.bin")
        pipeline.start()
        ...
        pipeline.stop(timeout=5.0)
        pipeline.close()
    """

    def __init__(
        self,
        output_path: str | Path,
        port: int = UDP_PORT,
        host: str = "",
        poll_interval: float = RECEIVE_POLL_INTERVAL,
    ) -> None:
        self.output_path = Path(output_path)
        self.stats = CaptureStats()
        self._state = CaptureState.IDLE
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._file: BinaryIO | None = None
        self._error: BaseException | None = None
        self._stopping = False
        self._closed = False
        self._loop_exited = False
        self._last_sequence: int | None = None

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, SOCKET_RCVBUF)
            sock.bind((host, port))
            sock.settimeout(poll_interval)
        except OSError:
            sock.close()
            raise
        self._sock: socket.socket | None = sock

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is CaptureState.RUNNING

    @property
    def alive(self) -> bool:
        """True while the receive loop is still processing datagrams."""
        return self.running and self._thread is not None and self._thread.is_alive()

    @property
    def bound_port(self) -> int | None:
        if self._sock is None:
            return None
        return self._sock.getsockname()[1]

    def start(self) -> None:
        """Open the output file and start the receive loop.

        Raises:
            AlreadyRunningError: If this instance was already started.
        """
        with self._lock:
            if self._state is not CaptureState.IDLE:
                raise AlreadyRunningError("IQ capture pipeline is already running")
            if self._closed:
                raise RuntimeError("IQ capture pipeline is closed")

            self._file = open(self.output_path, "wb")
            self._state = CaptureState.RUNNING
            self._thread = threading.Thread(
                target=self._recv_loop, name="netsdr-iq-capture", daemon=True
            )
            self._thread.start()

        logger.info(
            "IQ capture listening on UDP:%d, writing to %s", self.bound_port, self.output_path
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal the receive loop to exit and wait for it.

        Does nothing if the pipeline was never started or is already stopped.

        Raises:
            TimeoutError: If the loop does not exit within *timeout* seconds.
            CaptureError: If the loop terminated because of an error.
            RuntimeError: If another ``stop()`` is already in progress.
        """
        with self._lock:
            if self._state is not CaptureState.RUNNING:
                return
            if self._stopping:
                raise RuntimeError("IQ capture pipeline is already stopping")
            self._stopping = True

        try:
            self._cancel.set()
            self._thread.join(timeout)
            if self._thread.is_alive():
                raise TimeoutError(f"IQ capture loop did not exit within {timeout} s")
        finally:
            self._stopping = False

        with self._lock:
            self._state = CaptureState.STOPPED
        self._release()

        logger.info(
            "IQ capture stopped: %d packets, %d bytes written",
            self.stats.packets,
            self.stats.bytes_written,
        )
        if self._error is not None:
            error, self._error = self._error, None
            raise CaptureError(f"IQ capture loop failed: {error}") from error

    def close(self, timeout: float | None = None) -> None:
        """Stop the loop if needed and release the socket and file.

        If the loop does not exit within *timeout* seconds the
        ``TimeoutError`` propagates and the loop is left to release the
        socket and file itself once it returns.
        """
        if self._closed:
            return
        try:
            self.stop(timeout)
        finally:
            with self._lock:
                self._closed = True
                loop_active = self._thread is not None and not self._loop_exited
            if loop_active:
                logger.warning("IQ capture loop still running after close; detaching it")
            else:
                self._release()

    def __enter__(self) -> IqCapturePipeline:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _release(self) -> None:
        """Close the file and socket once; later calls are no-ops."""
        with self._lock:
            file, self._file = self._file, None
            sock, self._sock = self._sock, None
        if file is not None:
            try:
                file.close()
            except OSError as e:
                logger.warning("Error closing %s: %s", self.output_path, e)
        if sock is not None:
            sock.close()

    def _recv_loop(self) -> None:
        try:
            while not self._cancel.is_set():
                try:
                    data, _ = self._sock.recvfrom(UDP_BUFFER_SIZE)
                except socket.timeout:
                    continue
                except OSError:
                    if self._cancel.is_set():
                        break
                    raise
                self._handle_packet(data)
        except Exception as e:
            logger.error("Error processing IQ data: %s", e, exc_info=True)
            self._error = e
        else:
            logger.info("IQ data processing cancelled")
        finally:
            with self._lock:
                self._loop_exited = True
                detached = self._closed
            if detached:
                self._release()
            else:
                self._release_file()

    def _release_file(self) -> None:
        with self._lock:
            file, self._file = self._file, None
        if file is not None:
            file.close()

    def _handle_packet(self, data: bytes) -> None:
        if len(data) <= HEADER_SIZE:
            self.stats.short_packets += 1
            logger.warning("Received packet too small: %d bytes", len(data))
            return

        self._track_sequence(data)

        payload = data[HEADER_SIZE:]
        try:
            self._file.write(payload)
        except OSError as e:
            logger.error("Error writing IQ data to %s: %s", self.output_path, e)
            raise

        self.stats.packets += 1
        self.stats.bytes_written += len(payload)

    def _track_sequence(self, data: bytes) -> None:
        seq = sequence_number(data)
        if is_start_of_transmission(data):
            self.stats.transmissions += 1
        elif self._last_sequence is not None:
            # Sequence numbers wrap from 65535 back to 1; 0 marks a new stream.
            expected = self._last_sequence + 1
            if expected > 0xFFFF:
                expected = 1
            if seq != expected:
                self.stats.sequence_gaps += 1
                logger.warning("Sequence gap: expected %d, got %d", expected, seq)
        self._last_sequence = seq
