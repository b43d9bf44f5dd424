"""Tests for best-effort parsing of inbound frames."""

from netsdr_mcp.protocol.message import encode_control_message
from netsdr_mcp.protocol.parser import ParseStatus, parse_message, try_parse
from netsdr_mcp.protocol.types import ControlItem, DeviceMessageType


def test_parse_response():
    """A well-formed response decodes fully."""
    data = encode_control_message(
        DeviceMessageType.RESPONSE_TO_SET_OR_REQUEST, ControlItem.RECEIVER_STATE, b"\x80\x02\x00\x00"
    )
    result = parse_message(data)
    assert result.ok
    assert result.message.header.type is DeviceMessageType.RESPONSE_TO_SET_OR_REQUEST
    assert result.message.control_item is ControlItem.RECEIVER_STATE
    assert result.message.parameters == b"\x80\x02\x00\x00"


def test_parse_unsolicited():
    """Unsolicited control items are recognised by their type."""
    data = encode_control_message(
        DeviceMessageType.UNSOLICITED_CONTROL_ITEM, ControlItem.RECEIVER_FREQUENCY, b"\x00\x01"
    )
    message = try_parse(data)
    assert message is not None
    assert message.header.type is DeviceMessageType.UNSOLICITED_CONTROL_ITEM


def test_parse_too_short():
    """Fewer than 4 bytes is reported as too short, not an error."""
    assert parse_message(b"\x02\x00").status is ParseStatus.TOO_SHORT
    assert parse_message(b"").status is ParseStatus.TOO_SHORT
    assert try_parse(b"\x02\x00") is None


def test_parse_truncated():
    """A header declaring more bytes than received is truncated."""
    data = encode_control_message(
        DeviceMessageType.RESPONSE_TO_SET_OR_REQUEST, ControlItem.RECEIVER_STATE, b"\x80\x02\x00\x00"
    )
    result = parse_message(data[:6])
    assert result.status is ParseStatus.TRUNCATED
    assert result.message is None
    assert try_parse(data[:6]) is None


def test_parse_declared_length_below_minimum():
    """A declared length under 4 bytes is malformed."""
    result = parse_message(b"\x02\x00\x18\x00")
    assert result.status is ParseStatus.MALFORMED
    assert try_parse(b"\x02\x00\x18\x00") is None


def test_parse_ignores_bytes_past_declared_length():
    """Parameters stop at the length declared in the header."""
    data = encode_control_message(
        DeviceMessageType.RESPONSE_TO_SET_OR_REQUEST, ControlItem.RF_FILTER, b"\x00\x03"
    )
    message = try_parse(data + b"\xde\xad")
    assert message is not None
    assert message.parameters == b"\x00\x03"


def test_parse_unknown_item():
    """Unknown item codes still parse."""
    message = try_parse(b"\x05\x00\xef\xbe\x07")
    assert message is not None
    assert message.control_item == 0xBEEF
    assert message.parameters == b"\x07"


def test_parse_none_is_too_short():
    """None input is treated like no bytes."""
    assert parse_message(None).status is ParseStatus.TOO_SHORT
