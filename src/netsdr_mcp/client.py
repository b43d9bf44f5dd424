"""NetSDR device client: connection state, command dispatch and IQ capture lifecycle.

``connect``, ``disconnect`` and ``close`` are serialized by a lock. Command
methods are not: the control protocol is half-duplex with one request in
flight, so callers issuing commands from several threads must serialize
them themselves.
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path

from .capture import CaptureStats, IqCapturePipeline
from .defaults import CAPTURE_STOP_TIMEOUT, DEFAULT_OUTPUT_PATH, TCP_PORT, UDP_PORT
from .errors import (
    AlreadyConnectedError,
    CaptureError,
    CommandFailedError,
    CommandRejectedError,
    NotConnectedError,
)
from .models.notifications import UnsolicitedNotification
from .protocol.commands import (
    build_request_control_item,
    build_set_ad_modes,
    build_set_frequency,
    build_set_iq_sample_rate,
    build_set_rf_filter,
    build_start_iq_transfer,
    build_stop_iq_transfer,
)
from .protocol.helpers import is_nak
from .protocol.parser import ParsedMessage, parse_message
from .protocol.types import ControlItem, DeviceMessageType
from .transport.tcp_connection import TcpConnection, Transport

logger = logging.getLogger(__name__)


class NetSdrClient:
    """Client for a NetSDR receiver.

    Usage::

        with NetSdrClient() as client:
            client.connect("192.168.1.50")
            client.set_frequency(14_100_000)
            client.start_iq_transfer()
            ...
            client.stop_iq_transfer()

    Unsolicited control items reported by the device are published to
    ``client.notifications`` rather than delivered through callbacks.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        output_path: str | Path = DEFAULT_OUTPUT_PATH,
        udp_port: int = UDP_PORT,
        stop_timeout: float | None = CAPTURE_STOP_TIMEOUT,
    ) -> None:
        self._transport = transport if transport is not None else TcpConnection()
        self.output_path = Path(output_path)
        self.udp_port = udp_port
        self.stop_timeout = stop_timeout
        self.notifications: queue.Queue[UnsolicitedNotification] = queue.Queue()
        self._connection_lock = threading.Lock()
        self._pipeline: IqCapturePipeline | None = None
        self._last_stats: CaptureStats | None = None
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return self._transport.connected

    @property
    def is_capturing(self) -> bool:
        return self._pipeline is not None and self._pipeline.alive

    @property
    def capture_stats(self) -> CaptureStats | None:
        """Counters of the active pipeline, or of the last one stopped."""
        if self._pipeline is not None:
            return self._pipeline.stats
        return self._last_stats

    # ─── Connection ──────────────────────────────────────────────────

    def connect(self, host: str, port: int = TCP_PORT) -> None:
        """Open the control channel.

        Raises:
            ValueError: If *host* is empty.
            AlreadyConnectedError: If already connected.
            ConnectionError: If the transport cannot connect.
        """
        if not host:
            raise ValueError("host must not be empty")

        with self._connection_lock:
            if self.is_connected:
                raise AlreadyConnectedError()

            logger.info("Connecting to %s:%d", host, port)
            try:
                self._transport.open(host, port)
            except Exception:
                logger.error("Connection to %s:%d failed", host, port, exc_info=True)
                raise
            logger.info("Connected successfully")

    def disconnect(self) -> None:
        """Stop any IQ capture and close the control channel.

        Calling this while disconnected does nothing.
        """
        with self._connection_lock:
            self._disconnect_locked()

    def _disconnect_locked(self) -> None:
        try:
            self._discard_pipeline()
        finally:
            if self._transport.connected:
                self._transport.close()
                logger.info("Disconnected")

    def close(self) -> None:
        """Dispose the client. Safe to call more than once."""
        with self._connection_lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._disconnect_locked()
            except Exception as e:
                logger.warning("Error while disposing client: %s", e)

    def __enter__(self) -> NetSdrClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ─── Commands ────────────────────────────────────────────────────

    def set_frequency(self, frequency_hz: int) -> None:
        """Tune the receiver to *frequency_hz*."""
        self._require_connected()
        logger.info("Setting frequency to %d Hz", frequency_hz)
        try:
            self._send_command(
                build_set_frequency(frequency_hz), ControlItem.RECEIVER_FREQUENCY
            )
        except Exception:
            logger.error("Failed to set frequency to %d Hz", frequency_hz)
            raise

    def start_iq_transfer(self, use_24bit: bool = False) -> None:
        """Start IQ streaming and, if not already running, the capture pipeline."""
        self._require_connected()
        logger.info("Starting IQ transfer")
        try:
            self._send_command(
                build_start_iq_transfer(use_24bit), ControlItem.RECEIVER_STATE
            )
            if self._pipeline is not None and not self._pipeline.alive:
                logger.warning("Replacing IQ capture pipeline whose receive loop has exited")
                try:
                    self._discard_pipeline()
                except CaptureError as e:
                    logger.warning("Previous IQ capture ended with an error: %s", e)
            if self._pipeline is None:
                pipeline = IqCapturePipeline(self.output_path, self.udp_port)
                try:
                    pipeline.start()
                except Exception:
                    pipeline.close()
                    raise
                self._pipeline = pipeline
        except Exception:
            logger.error("Failed to start IQ transfer")
            raise

    def stop_iq_transfer(self) -> None:
        """Stop IQ streaming and shut down the capture pipeline."""
        self._require_connected()
        logger.info("Stopping IQ transfer")
        try:
            self._send_command(build_stop_iq_transfer(), ControlItem.RECEIVER_STATE)
            self._discard_pipeline()
        except Exception:
            logger.error("Failed to stop IQ transfer")
            raise

    def set_rf_filter(self, filter_index: int, channel: int = 0) -> None:
        """Select an RF filter (0 = automatic)."""
        self._require_connected()
        logger.info("Setting RF filter to %d", filter_index)
        self._send_command(build_set_rf_filter(filter_index, channel), ControlItem.RF_FILTER)

    def set_ad_modes(self, dither: bool = False, high_gain: bool = False, channel: int = 0) -> None:
        """Configure A/D dither and gain."""
        self._require_connected()
        logger.info("Setting A/D modes: dither=%s high_gain=%s", dither, high_gain)
        self._send_command(
            build_set_ad_modes(dither, high_gain, channel), ControlItem.AD_MODES
        )

    def set_iq_sample_rate(self, sample_rate_hz: int, channel: int = 0) -> None:
        """Set the IQ output sample rate."""
        self._require_connected()
        logger.info("Setting IQ sample rate to %d Hz", sample_rate_hz)
        self._send_command(
            build_set_iq_sample_rate(sample_rate_hz, channel),
            ControlItem.IQ_OUTPUT_SAMPLE_RATE,
        )

    def request_control_item(self, control_item: ControlItem, channel: int | None = None) -> bytes | None:
        """Ask the device for the current value of *control_item*.

        Returns:
            The parameter bytes of the device's response, or None if the
            reply was empty or not a response frame.
        """
        self._require_connected()
        logger.info("Requesting control item %s", control_item.name)
        reply = self._send_command(
            build_request_control_item(control_item, channel), control_item
        )
        if reply is None:
            return None
        return reply.parameters

    # ─── Notifications ───────────────────────────────────────────────

    def get_notification(self, timeout: float | None = None) -> UnsolicitedNotification | None:
        """Return the next unsolicited notification, or None.

        With ``timeout=None`` this does not block.
        """
        try:
            if timeout is None:
                return self.notifications.get_nowait()
            return self.notifications.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain_notifications(self) -> list[UnsolicitedNotification]:
        """Remove and return every queued notification."""
        items = []
        while True:
            try:
                items.append(self.notifications.get_nowait())
            except queue.Empty:
                return items

    # ─── Internals ───────────────────────────────────────────────────

    def _require_connected(self) -> None:
        if not self.is_connected:
            raise NotConnectedError()

    def _send_command(self, frame: bytes, control_item: ControlItem) -> ParsedMessage | None:
        """Write one frame, read one response and interpret it.

        Returns:
            The decoded reply, or None for an empty, undecodable or
            unsolicited response.

        Raises:
            CommandRejectedError: If the device answered with a NAK.
            CommandFailedError: If the write, read or decode step failed.
        """
        self._require_connected()

        phase = "write"
        try:
            self._transport.write(frame)
            phase = "read"
            response = self._transport.read()
            phase = "decode"
            if not response:
                return None
            if is_nak(response):
                logger.warning("Device rejected command for %s", control_item.name)
                raise CommandRejectedError(control_item)
            return self._handle_response(response)
        except CommandRejectedError:
            raise
        except Exception as e:
            raise CommandFailedError(phase, control_item) from e

    def _handle_response(self, response: bytes) -> ParsedMessage | None:
        result = parse_message(response, DeviceMessageType)
        if not result.ok:
            logger.debug("Ignoring response (%s): %s", result.status.value, result.detail)
            return None

        message = result.message
        if message.header.type is DeviceMessageType.UNSOLICITED_CONTROL_ITEM:
            notification = UnsolicitedNotification(
                control_item=message.control_item,
                parameters=message.parameters,
            )
            logger.info("Unsolicited control item %r", notification.control_item)
            self.notifications.put(notification)
            return None
        return message

    def _discard_pipeline(self) -> None:
        pipeline, self._pipeline = self._pipeline, None
        if pipeline is None:
            return
        try:
            pipeline.close(self.stop_timeout)
        finally:
            self._last_stats = pipeline.stats
