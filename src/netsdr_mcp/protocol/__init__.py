"""Protocol layer: frame header, control messages, helpers, parsing and command builders."""

from .header import MessageHeader, encode_header, decode_header
from .message import ControlMessage, encode_control_message, decode_control_message
from .parser import ParseResult, ParseStatus, ParsedMessage, parse_message, try_parse
from .types import ControlItem, DeviceMessageType, HostMessageType
