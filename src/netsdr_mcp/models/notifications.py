"""Unsolicited control item notifications published by the client."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..protocol.types import ControlItem


@dataclass(frozen=True)
class UnsolicitedNotification:
    """A control item value the device reported without being asked."""

    control_item: ControlItem | int
    parameters: bytes = b""
    received_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "control_item": getattr(self.control_item, "name", int(self.control_item)),
            "code": f"0x{int(self.control_item):04X}",
            "parameters_hex": self.parameters.hex(" ") if self.parameters else "",
            "received_at": self.received_at,
        }
