"""Exception hierarchy for the NetSDR client.

Codec and session errors also derive from the builtin exception a caller
would expect (``ValueError``, ``ConnectionError``, ``RuntimeError``), so
generic handlers keep working.
"""

from __future__ import annotations


class NetSdrError(Exception):
    """Base class for every error raised by this package."""


class FormatError(NetSdrError, ValueError):
    """A frame or header is too short to decode."""


class LengthOutOfRangeError(NetSdrError, ValueError):
    """A frame length does not fit the 13-bit header field."""


class NotConnectedError(NetSdrError, ConnectionError):
    """A command was issued while the client is disconnected."""

    def __init__(self, message: str = "Not connected to device") -> None:
        super().__init__(message)


class AlreadyConnectedError(NetSdrError, ConnectionError):
    """``connect()`` was called on a connected client."""

    def __init__(self, message: str = "Already connected") -> None:
        super().__init__(message)


class CommandRejectedError(NetSdrError):
    """The device answered a command with a NAK."""

    def __init__(self, control_item=None, message: str | None = None) -> None:
        self.control_item = control_item
        if message is None:
            message = "Command failed: not supported by device"
            if control_item is not None:
                message += f" (control item {_item_name(control_item)})"
        super().__init__(message)


class CommandFailedError(NetSdrError):
    """A command could not be completed because of an I/O or decode error.

    The original exception is chained as ``__cause__``; ``phase`` names the
    step that failed (``"write"``, ``"read"`` or ``"decode"``).
    """

    def __init__(self, phase: str, control_item=None, message: str | None = None) -> None:
        self.phase = phase
        self.control_item = control_item
        if message is None:
            message = f"Command failed during {phase}"
            if control_item is not None:
                message += f" (control item {_item_name(control_item)})"
        super().__init__(message)


class AlreadyRunningError(NetSdrError, RuntimeError):
    """``start()`` was called twice on one capture pipeline."""


class CaptureError(NetSdrError):
    """The capture loop terminated because of an error."""


def _item_name(control_item) -> str:
    name = getattr(control_item, "name", None)
    if name:
        return name
    return f"0x{int(control_item):04X}"
