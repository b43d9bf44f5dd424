"""NetSDR receiver control client with UDP IQ capture and an MCP server front-end."""

from .client import NetSdrClient
from .capture import CaptureState, CaptureStats, IqCapturePipeline
from .errors import (
    AlreadyConnectedError,
    AlreadyRunningError,
    CaptureError,
    CommandFailedError,
    CommandRejectedError,
    FormatError,
    LengthOutOfRangeError,
    NetSdrError,
    NotConnectedError,
)
from .models.notifications import UnsolicitedNotification
from .protocol.types import ControlItem, DeviceMessageType, HostMessageType

__version__ = "0.1.0"
