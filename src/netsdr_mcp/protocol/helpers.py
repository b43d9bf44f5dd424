"""Stateless checks and builders over raw frames."""

from __future__ import annotations

from ..errors import FormatError
from .header import encode_header
from .types import HostMessageType

NAK = b"\x02\x00"
ACK_LENGTH = 3


def is_nak(data: bytes) -> bool:
    """True if *data* is exactly the 2-byte NAK sentinel."""
    return data is not None and bytes(data) == NAK


def build_ack(data_item: int) -> bytes:
    """Build a 3-byte data item acknowledgement frame."""
    if not 0 <= data_item <= 0xFF:
        raise ValueError(f"Data item must be 0-255, got {data_item}")
    return encode_header(ACK_LENGTH, HostMessageType.DATA_ITEM_ACK) + bytes([data_item])


def is_start_of_transmission(data: bytes) -> bool:
    """True if a data packet carries sequence number 0."""
    if len(data) < 4:
        return False
    return data[2] == 0 and data[3] == 0


def sequence_number(data: bytes) -> int:
    """Return the little-endian 16-bit sequence number of a data packet.

    Raises:
        FormatError: If *data* is shorter than 4 bytes.
    """
    if len(data) < 4:
        raise FormatError(f"Data packet needs 4 bytes for a sequence number, got {len(data)}")
    return int.from_bytes(data[2:4], "little")
