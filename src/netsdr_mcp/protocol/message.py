"""Control message encoding and decoding.

Frame layout (all integers little-endian)::

    +----------+--------------+-----------------------+
    |  Header  | Control item |      Parameters       |
    |  2 bytes |   2 bytes    | header.length-4 bytes |
    +----------+--------------+-----------------------+
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ..defaults import HEADER_SIZE, MAX_FRAME_LENGTH
from ..errors import FormatError, LengthOutOfRangeError
from .header import MessageHeader, decode_header, encode_header
from .types import ControlItem, DeviceMessageType, to_control_item

MAX_PARAMETER_LENGTH = MAX_FRAME_LENGTH - HEADER_SIZE


@dataclass(frozen=True)
class ControlMessage:
    """A control item frame: header, item code and parameter bytes."""

    header: MessageHeader
    control_item: ControlItem | int
    parameters: bytes = b""

    def __post_init__(self) -> None:
        if self.header.length != HEADER_SIZE + len(self.parameters):
            raise ValueError(
                f"Header length {self.header.length} does not match "
                f"{len(self.parameters)} parameter bytes"
            )

    @classmethod
    def create(
        cls,
        message_type: IntEnum,
        control_item: ControlItem | int,
        parameters: bytes = b"",
    ) -> ControlMessage:
        """Build a message, deriving the header length from *parameters*."""
        parameters = bytes(parameters)
        length = HEADER_SIZE + len(parameters)
        if length > MAX_FRAME_LENGTH:
            raise LengthOutOfRangeError(
                f"Message length {length} exceeds {MAX_FRAME_LENGTH} bytes"
            )
        return cls(MessageHeader(length, message_type), control_item, parameters)

    @property
    def type(self) -> IntEnum:
        return self.header.type

    def to_bytes(self) -> bytes:
        return (
            encode_header(self.header.length, self.header.type)
            + int(self.control_item).to_bytes(2, "little")
            + self.parameters
        )

    def __repr__(self) -> str:
        item = getattr(self.control_item, "name", f"0x{int(self.control_item):04X}")
        return (
            f"ControlMessage(type={self.header.type.name}, item={item}, "
            f"parameters={self.parameters.hex(' ') if self.parameters else '(empty)'})"
        )


def encode_control_message(
    message_type: IntEnum,
    control_item: ControlItem | int,
    parameters: bytes = b"",
) -> bytes:
    """Encode a control message into wire bytes.

    Raises:
        LengthOutOfRangeError: If ``4 + len(parameters)`` exceeds 8191.
    """
    return ControlMessage.create(message_type, control_item, parameters).to_bytes()


def decode_control_message(
    data: bytes,
    direction: type[IntEnum] = DeviceMessageType,
) -> ControlMessage:
    """Decode wire bytes into a ControlMessage.

    Parameters are every byte after offset 4. The header's own length field
    is not trusted here; ``parser.parse_message`` is the place that checks
    it against the received byte count.

    Raises:
        FormatError: If *data* is shorter than 4 bytes.
    """
    if len(data) < HEADER_SIZE:
        raise FormatError(f"Control message needs at least 4 bytes, got {len(data)}")
    header = decode_header(data, direction)
    control_item = to_control_item(int.from_bytes(data[2:4], "little"))
    return ControlMessage.create(header.type, control_item, bytes(data[HEADER_SIZE:]))
