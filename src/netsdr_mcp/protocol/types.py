"""Control item codes and message type enumerations.

The 3-bit message type field is reused in both directions with different
meanings (code 0 is "set control item" from the host but "response to set
or request" from the device), so each direction gets its own enumeration.
Decoders are told which one applies.
"""

from __future__ import annotations

from enum import IntEnum


class ControlItem(IntEnum):
    """Device-addressable settings."""

    RECEIVER_STATE = 0x0018
    RECEIVER_FREQUENCY = 0x0020
    RF_FILTER = 0x0044
    AD_MODES = 0x008A
    IQ_OUTPUT_SAMPLE_RATE = 0x00B8


class HostMessageType(IntEnum):
    """Message types sent from host to device."""

    SET_CONTROL_ITEM = 0b000
    REQUEST_CONTROL_ITEM = 0b001
    REQUEST_CONTROL_ITEM_RANGE = 0b010
    DATA_ITEM_ACK = 0b011
    DATA_ITEM_0 = 0b100
    DATA_ITEM_1 = 0b101
    DATA_ITEM_2 = 0b110
    DATA_ITEM_3 = 0b111


class DeviceMessageType(IntEnum):
    """Message types sent from device to host."""

    RESPONSE_TO_SET_OR_REQUEST = 0b000
    UNSOLICITED_CONTROL_ITEM = 0b001
    RESPONSE_TO_RANGE = 0b010
    DATA_ITEM_ACK = 0b011
    DATA_ITEM_0 = 0b100
    DATA_ITEM_1 = 0b101
    DATA_ITEM_2 = 0b110
    DATA_ITEM_3 = 0b111


def to_control_item(code: int) -> ControlItem | int:
    """Return the ``ControlItem`` for *code*, or the raw code if unknown."""
    try:
        return ControlItem(code)
    except ValueError:
        return code
