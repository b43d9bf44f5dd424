"""Two-byte frame header.

Every control-channel message and every UDP data packet starts with::

    bit  15 14 13 | 12 ........................ 0
         type (3) |         length (13)

packed as a little-endian 16-bit value. ``length`` counts the whole frame,
header included.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ..defaults import MAX_FRAME_LENGTH
from ..errors import FormatError, LengthOutOfRangeError
from .types import DeviceMessageType

LENGTH_MASK = 0x1FFF
TYPE_SHIFT = 13
TYPE_MASK = 0x07
HEADER_LENGTH = 2


@dataclass(frozen=True)
class MessageHeader:
    """Decoded frame header."""

    length: int
    type: IntEnum

    def __post_init__(self) -> None:
        _check_length(self.length)

    def to_bytes(self) -> bytes:
        return encode_header(self.length, self.type)

    @classmethod
    def from_bytes(cls, data: bytes, direction: type[IntEnum] = DeviceMessageType) -> MessageHeader:
        return decode_header(data, direction)

    def __repr__(self) -> str:
        return f"MessageHeader(length={self.length}, type={getattr(self.type, 'name', self.type)})"


def _check_length(length: int) -> None:
    if not 0 <= length <= MAX_FRAME_LENGTH:
        raise LengthOutOfRangeError(
            f"Message length must be 0-{MAX_FRAME_LENGTH}, got {length}"
        )


def encode_header(length: int, message_type: int) -> bytes:
    """Pack *length* and *message_type* into two little-endian bytes.

    Raises:
        LengthOutOfRangeError: If *length* does not fit in 13 bits.
    """
    _check_length(length)
    value = (length & LENGTH_MASK) | ((int(message_type) & TYPE_MASK) << TYPE_SHIFT)
    return value.to_bytes(2, "little")


def decode_header(data: bytes, direction: type[IntEnum] = DeviceMessageType) -> MessageHeader:
    """Unpack the first two bytes of *data*.

    Args:
        data: At least two bytes; anything after the header is ignored.
        direction: Enumeration used to interpret the type code.

    Raises:
        FormatError: If fewer than two bytes are supplied.
    """
    if len(data) < HEADER_LENGTH:
        raise FormatError(f"Header needs 2 bytes, got {len(data)}")
    value = int.from_bytes(data[:HEADER_LENGTH], "little")
    return MessageHeader(
        length=value & LENGTH_MASK,
        type=direction((value >> TYPE_SHIFT) & TYPE_MASK),
    )
