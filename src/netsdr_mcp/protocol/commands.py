"""Receiver command builders.

Every builder returns a complete control-channel frame ready to write to
the TCP transport.
"""

from __future__ import annotations

from .message import encode_control_message
from .types import ControlItem, HostMessageType

IQ_MODE_COMPLEX = 0x80
RUN_STATE_RUN = 0x02
RUN_STATE_STOP = 0x01
BIT_DEPTH_24 = 0x80
BIT_DEPTH_16 = 0x00

AD_MODE_DITHER = 0x01
AD_MODE_HIGH_GAIN = 0x02

UINT32_MAX = 0xFFFFFFFF


def build_command(
    control_item: ControlItem,
    parameters: bytes = b"",
    message_type: HostMessageType = HostMessageType.SET_CONTROL_ITEM,
) -> bytes:
    """Build a frame addressing a single control item."""
    return encode_control_message(message_type, control_item, parameters)


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be 0-255, got {value}")


def _check_uint32(name: str, value: int) -> None:
    if not 0 <= value <= UINT32_MAX:
        raise ValueError(f"{name} must be 0-{UINT32_MAX}, got {value}")


def build_start_iq_transfer(use_24bit: bool = False) -> bytes:
    """Build a ReceiverState command that starts complex IQ streaming.

    Args:
        use_24bit: Request 24-bit samples instead of 16-bit.
    """
    parameters = bytes([
        IQ_MODE_COMPLEX,
        RUN_STATE_RUN,
        BIT_DEPTH_24 if use_24bit else BIT_DEPTH_16,
        0x00,  # FIFO size, unused in continuous mode
    ])
    return build_command(ControlItem.RECEIVER_STATE, parameters)


def build_stop_iq_transfer() -> bytes:
    """Build a ReceiverState command that stops IQ streaming."""
    return build_command(
        ControlItem.RECEIVER_STATE, bytes([0x00, RUN_STATE_STOP, 0x00, 0x00])
    )


def build_set_frequency(frequency_hz: int, channel: int = 0) -> bytes:
    """Build a ReceiverFrequency command.

    The device field is 40 bits wide; only the low 32 bits are used, the
    top byte is always zero.

    Args:
        frequency_hz: Target frequency in Hz (0 to 2**32-1).
        channel: Receiver channel selector.
    """
    _check_uint32("Frequency", frequency_hz)
    _check_byte("Channel", channel)
    parameters = bytes([channel]) + frequency_hz.to_bytes(4, "little") + b"\x00"
    return build_command(ControlItem.RECEIVER_FREQUENCY, parameters)


def build_set_rf_filter(filter_index: int, channel: int = 0) -> bytes:
    """Build an RF filter selection command (index 0 selects automatic)."""
    _check_byte("Filter index", filter_index)
    _check_byte("Channel", channel)
    return build_command(ControlItem.RF_FILTER, bytes([channel, filter_index]))


def build_set_ad_modes(dither: bool = False, high_gain: bool = False, channel: int = 0) -> bytes:
    """Build an A/D modes command.

    Args:
        dither: Enable A/D dither.
        high_gain: Use the 1.5x A/D gain setting.
        channel: Receiver channel selector.
    """
    _check_byte("Channel", channel)
    mode = (AD_MODE_DITHER if dither else 0) | (AD_MODE_HIGH_GAIN if high_gain else 0)
    return build_command(ControlItem.AD_MODES, bytes([channel, mode]))


def build_set_iq_sample_rate(sample_rate_hz: int, channel: int = 0) -> bytes:
    """Build an IQ output sample rate command."""
    _check_uint32("Sample rate", sample_rate_hz)
    _check_byte("Channel", channel)
    parameters = bytes([channel]) + sample_rate_hz.to_bytes(4, "little")
    return build_command(ControlItem.IQ_OUTPUT_SAMPLE_RATE, parameters)


def build_request_control_item(control_item: ControlItem, channel: int | None = None) -> bytes:
    """Build a request for the current value of a control item."""
    parameters = b""
    if channel is not None:
        _check_byte("Channel", channel)
        parameters = bytes([channel])
    return build_command(control_item, parameters, HostMessageType.REQUEST_CONTROL_ITEM)
