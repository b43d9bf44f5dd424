"""Best-effort decoding of frames received on the control channel.

Inbound frames may be command replies, unsolicited notifications or noise.
``parse_message`` reports why a frame could not be decoded instead of
raising, and ``try_parse`` collapses that to "a message or nothing".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from ..defaults import HEADER_SIZE
from ..errors import NetSdrError
from .header import MessageHeader, decode_header
from .types import ControlItem, DeviceMessageType, to_control_item


class ParseStatus(Enum):
    OK = "ok"
    TOO_SHORT = "too_short"        # fewer than 4 bytes
    TRUNCATED = "truncated"        # header declares more bytes than received
    MALFORMED = "malformed"        # present but undecodable


@dataclass(frozen=True)
class ParsedMessage:
    """A successfully decoded inbound frame."""

    header: MessageHeader
    control_item: ControlItem | int
    parameters: bytes


@dataclass(frozen=True)
class ParseResult:
    status: ParseStatus
    message: ParsedMessage | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.OK


def parse_message(data: bytes, direction: type[IntEnum] = DeviceMessageType) -> ParseResult:
    """Decode *data* into header, control item and parameters.

    Only the bytes covered by the header's length field are used as
    parameters; anything after that is ignored.
    """
    if data is None or len(data) < HEADER_SIZE:
        size = 0 if data is None else len(data)
        return ParseResult(ParseStatus.TOO_SHORT, detail=f"{size} bytes")

    try:
        header = decode_header(data, direction)
    except (NetSdrError, ValueError) as e:
        return ParseResult(ParseStatus.MALFORMED, detail=str(e))

    if header.length > len(data):
        return ParseResult(
            ParseStatus.TRUNCATED,
            detail=f"header declares {header.length} bytes, got {len(data)}",
        )
    if header.length < HEADER_SIZE:
        return ParseResult(
            ParseStatus.MALFORMED,
            detail=f"declared length {header.length} is below the {HEADER_SIZE}-byte minimum",
        )

    control_item = to_control_item(int.from_bytes(data[2:4], "little"))
    parameters = bytes(data[HEADER_SIZE:header.length])
    return ParseResult(
        ParseStatus.OK,
        message=ParsedMessage(header=header, control_item=control_item, parameters=parameters),
    )


def try_parse(data: bytes, direction: type[IntEnum] = DeviceMessageType) -> ParsedMessage | None:
    """Return the decoded message, or None if *data* should be ignored."""
    return parse_message(data, direction).message
