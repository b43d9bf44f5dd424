"""MCP server entry point for a NetSDR receiver.

Exposes the client's operations as tools and its state as resources
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import NetSdrClient
from .defaults import DEFAULT_OUTPUT_PATH, TCP_PORT, UDP_PORT
from .errors import NetSdrError
from .protocol.types import ControlItem

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "netsdr",
    instructions="MCP server for tuning a NetSDR receiver and capturing its IQ stream",
)

# Global client state
_client: NetSdrClient | None = None


def _get_client() -> NetSdrClient:
    """Get the connected client, raising if not connected."""
    if _client is None or not _client.is_connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _client


def _error(e: Exception) -> dict[str, Any]:
    result: dict[str, Any] = {"error": str(e)}
    if e.__cause__ is not None:
        result["cause"] = str(e.__cause__)
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str,
    port: int = TCP_PORT,
    output_path: str = DEFAULT_OUTPUT_PATH,
    udp_port: int = UDP_PORT,
) -> dict[str, Any]:
    """Open the TCP control channel to a NetSDR receiver.

    Args:
        host: Receiver hostname or IP address.
        port: TCP control port (default 50000).
        output_path: File that IQ captures are written to.
        udp_port: UDP port the receiver streams IQ data to (default 60000).
    """
    global _client
    if _client is not None and _client.is_connected:
        return {"connected": True, "message": "Already connected"}

    client = NetSdrClient(output_path=output_path, udp_port=udp_port)
    try:
        client.connect(host, port)
    except (NetSdrError, ValueError, ConnectionError) as e:
        client.close()
        return _error(e)

    _client = client
    return {"connected": True, "host": host, "port": port}


@mcp.tool()
def disconnect() -> dict[str, Any]:
    """Stop any IQ capture and close the control channel."""
    global _client
    if _client is None:
        return {"disconnected": True}
    client, _client = _client, None
    try:
        client.disconnect()
    except NetSdrError as e:
        return {"disconnected": True, **_error(e)}
    finally:
        client.close()
    return {"disconnected": True}


# ─── RECEIVER TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def set_frequency(frequency_hz: int) -> dict[str, Any]:
    """Tune the receiver.

    Args:
        frequency_hz: Center frequency in Hz (0 to 4294967295).
    """
    client = _get_client()
    try:
        client.set_frequency(frequency_hz)
    except (NetSdrError, ValueError) as e:
        return _error(e)
    return {"frequency_hz": frequency_hz}


@mcp.tool()
def start_iq_transfer(use_24bit: bool = False) -> dict[str, Any]:
    """Start IQ streaming and capture the UDP data to the output file.

    Args:
        use_24bit: Request 24-bit samples instead of 16-bit.
    """
    client = _get_client()
    try:
        client.start_iq_transfer(use_24bit)
    except (NetSdrError, OSError) as e:
        return _error(e)
    return {
        "capturing": client.is_capturing,
        "output_path": str(client.output_path),
        "udp_port": client.udp_port,
    }


@mcp.tool()
def stop_iq_transfer() -> dict[str, Any]:
    """Stop IQ streaming and close the capture file."""
    client = _get_client()
    try:
        client.stop_iq_transfer()
    except (NetSdrError, TimeoutError) as e:
        return _error(e)
    stats = client.capture_stats
    return {
        "capturing": False,
        "stats": stats.to_dict() if stats else None,
    }


@mcp.tool()
def set_rf_filter(filter_index: int, channel: int = 0) -> dict[str, Any]:
    """Select an RF filter.

    Args:
        filter_index: Filter index, 0 selects the filter automatically.
        channel: Receiver channel (default 0).
    """
    client = _get_client()
    try:
        client.set_rf_filter(filter_index, channel)
    except (NetSdrError, ValueError) as e:
        return _error(e)
    return {"filter_index": filter_index, "channel": channel}


@mcp.tool()
def set_ad_modes(dither: bool = False, high_gain: bool = False, channel: int = 0) -> dict[str, Any]:
    """Configure the A/D converter.

    Args:
        dither: Enable dither.
        high_gain: Use the 1.5x gain setting.
        channel: Receiver channel (default 0).
    """
    client = _get_client()
    try:
        client.set_ad_modes(dither, high_gain, channel)
    except (NetSdrError, ValueError) as e:
        return _error(e)
    return {"dither": dither, "high_gain": high_gain, "channel": channel}


@mcp.tool()
def set_iq_sample_rate(sample_rate_hz: int, channel: int = 0) -> dict[str, Any]:
    """Set the IQ output sample rate.

    Args:
        sample_rate_hz: Sample rate in Hz.
        channel: Receiver channel (default 0).
    """
    client = _get_client()
    try:
        client.set_iq_sample_rate(sample_rate_hz, channel)
    except (NetSdrError, ValueError) as e:
        return _error(e)
    return {"sample_rate_hz": sample_rate_hz, "channel": channel}


@mcp.tool()
def get_control_item(item: str, channel: int | None = None) -> dict[str, Any]:
    """Read the current value of a control item from the device.

    Args:
        item: Control item name, e.g. "receiver_frequency" or "rf_filter".
        channel: Optional receiver channel.
    """
    try:
        control_item = ControlItem[item.upper()]
    except KeyError:
        return {
            "error": f"Unknown control item '{item}'. "
                     f"Valid: {[c.name.lower() for c in ControlItem]}"
        }

    client = _get_client()
    try:
        parameters = client.request_control_item(control_item, channel)
    except (NetSdrError, ValueError) as e:
        return _error(e)
    return {
        "item": control_item.name.lower(),
        "parameters_hex": parameters.hex(" ") if parameters else "",
    }


@mcp.tool()
def get_notifications() -> dict[str, Any]:
    """Return and clear unsolicited control items reported by the device."""
    client = _get_client()
    return {
        "notifications": [n.to_dict() for n in client.drain_notifications()],
    }


@mcp.tool()
def get_status() -> dict[str, Any]:
    """Connection and capture state."""
    return _status()


def _status() -> dict[str, Any]:
    if _client is None:
        return {"connected": False, "capturing": False}
    stats = _client.capture_stats
    return {
        "connected": _client.is_connected,
        "capturing": _client.is_capturing,
        "output_path": str(_client.output_path),
        "stats": stats.to_dict() if stats else None,
    }


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("netsdr://device/status")
def resource_device_status() -> str:
    """Connection state and capture state."""
    return json.dumps(_status())


@mcp.resource("netsdr://capture/stats")
def resource_capture_stats() -> str:
    """Counters of the current or last IQ capture."""
    stats = _client.capture_stats if _client is not None else None
    return json.dumps(stats.to_dict() if stats else {})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
