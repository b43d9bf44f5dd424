"""Tests for the UDP IQ capture pipeline."""

from __future__ import annotations

import logging
import os
import socket
import threading
import time

import pytest

from netsdr_mcp.capture import CaptureState, IqCapturePipeline
from netsdr_mcp.errors import AlreadyRunningError, CaptureError


def _packet(sequence: int, payload: bytes) -> bytes:
    header = (len(payload) + 4 | (0b100 << 13)).to_bytes(2, "little")
    return header + sequence.to_bytes(2, "little") + payload


def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def pipeline(tmp_path):
    p = IqCapturePipeline(tmp_path / "iq.bin", port=0, host="127.0.0.1", poll_interval=0.05)
    yield p
    p.close(timeout=2.0)


@pytest.fixture
def sender():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield sock
    sock.close()


def _send(sender, pipeline, data: bytes) -> None:
    sender.sendto(data, ("127.0.0.1", pipeline.bound_port))


def test_writes_payload_without_header(pipeline, sender):
    """A 1028-byte datagram yields exactly its 1024-byte payload."""
    payload = os.urandom(1024)
    pipeline.start()
    _send(sender, pipeline, _packet(0, payload))
    _wait_for(lambda: pipeline.stats.packets == 1)
    pipeline.stop(timeout=2.0)

    data = pipeline.output_path.read_bytes()
    assert len(data) == 1024
    assert data == payload


def test_two_packets_in_order(pipeline, sender):
    """Sequential datagrams are concatenated in send order."""
    first = b"\x11" * 1024
    second = b"\x22" * 1024
    pipeline.start()
    _send(sender, pipeline, _packet(0, first))
    _send(sender, pipeline, _packet(1, second))
    _wait_for(lambda: pipeline.stats.packets == 2)
    pipeline.stop(timeout=2.0)

    data = pipeline.output_path.read_bytes()
    assert len(data) == 2048
    assert data == first + second
    assert pipeline.stats.bytes_written == 2048
    assert pipeline.stats.sequence_gaps == 0


def test_short_packet_skipped(pipeline, sender, caplog):
    """A 2-byte datagram is logged and skipped; later packets still arrive."""
    payload = b"\xab" * 16
    pipeline.start()
    with caplog.at_level(logging.WARNING, logger="netsdr_mcp.capture"):
        _send(sender, pipeline, b"\x02\x00")
        _wait_for(lambda: pipeline.stats.short_packets == 1)
        _send(sender, pipeline, _packet(0, payload))
        _wait_for(lambda: pipeline.stats.packets == 1)
    pipeline.stop(timeout=2.0)

    warnings = [r for r in caplog.records if "too small" in r.getMessage()]
    assert len(warnings) == 1
    assert pipeline.output_path.read_bytes() == payload


def test_header_only_packet_skipped(pipeline, sender):
    """A 4-byte datagram carries no payload and writes nothing."""
    pipeline.start()
    _send(sender, pipeline, _packet(0, b""))
    _wait_for(lambda: pipeline.stats.short_packets == 1)
    pipeline.stop(timeout=2.0)
    assert pipeline.output_path.read_bytes() == b""


def test_sequence_gap_counted(pipeline, sender):
    """Gaps in the sequence are counted but data is still written."""
    pipeline.start()
    _send(sender, pipeline, _packet(0, b"\x01" * 8))
    _send(sender, pipeline, _packet(1, b"\x02" * 8))
    _send(sender, pipeline, _packet(5, b"\x03" * 8))
    _wait_for(lambda: pipeline.stats.packets == 3)
    pipeline.stop(timeout=2.0)

    assert pipeline.stats.sequence_gaps == 1
    assert pipeline.stats.transmissions == 1
    assert len(pipeline.output_path.read_bytes()) == 24


def test_start_truncates_existing_file(tmp_path):
    """Starting a capture replaces old file contents."""
    path = tmp_path / "iq.bin"
    path.write_bytes(b"old data")
    with IqCapturePipeline(path, port=0, host="127.0.0.1", poll_interval=0.05) as p:
        p.start()
        p.stop(timeout=2.0)
    assert path.read_bytes() == b""


def test_start_twice_raises(pipeline):
    """A pipeline cannot be started twice."""
    pipeline.start()
    with pytest.raises(AlreadyRunningError):
        pipeline.start()


def test_start_after_stop_raises(pipeline):
    """Instances are single-use."""
    pipeline.start()
    pipeline.stop(timeout=2.0)
    assert pipeline.state is CaptureState.STOPPED
    with pytest.raises(AlreadyRunningError):
        pipeline.start()


def test_stop_never_started(pipeline):
    """stop() on an idle pipeline is a no-op."""
    pipeline.stop()
    assert pipeline.state is CaptureState.IDLE


def test_stop_returns_promptly(pipeline):
    """stop() does not wait for another datagram."""
    pipeline.start()
    started = time.monotonic()
    pipeline.stop(timeout=2.0)
    assert time.monotonic() - started < 1.0
    assert not pipeline.running


def test_close_releases_socket(tmp_path):
    """close() frees the port and is idempotent."""
    p = IqCapturePipeline(tmp_path / "iq.bin", port=0, host="127.0.0.1", poll_interval=0.05)
    port = p.bound_port
    p.start()
    p.close(timeout=2.0)
    p.close(timeout=2.0)
    assert p.bound_port is None

    rebound = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        rebound.bind(("127.0.0.1", port))
    finally:
        rebound.close()


def test_close_without_start(tmp_path):
    """A pipeline that never ran closes cleanly."""
    p = IqCapturePipeline(tmp_path / "iq.bin", port=0, host="127.0.0.1")
    p.close()
    assert not (tmp_path / "iq.bin").exists()


class _FailingFile:
    def write(self, data):
        raise OSError("disk full")

    def close(self):
        pass


def test_write_failure_surfaces_on_stop(pipeline, sender, caplog):
    """A write error ends the loop and is raised from stop()."""
    pipeline.start()
    real_file, pipeline._file = pipeline._file, _FailingFile()
    real_file.close()
    with caplog.at_level(logging.ERROR, logger="netsdr_mcp.capture"):
        _send(sender, pipeline, _packet(0, b"\x00" * 32))
        _wait_for(lambda: not pipeline._thread.is_alive())
    with pytest.raises(CaptureError) as exc_info:
        pipeline.stop(timeout=2.0)
    assert isinstance(exc_info.value.__cause__, OSError)
    assert any("disk full" in r.getMessage() for r in caplog.records)


class _BlockingFile:
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def write(self, data):
        self.entered.set()
        self.release.wait(5.0)
        return len(data)

    def close(self):
        pass


def _block_loop(pipeline, sender) -> _BlockingFile:
    stuck = _BlockingFile()
    real_file, pipeline._file = pipeline._file, stuck
    real_file.close()
    _send(sender, pipeline, _packet(0, b"\x00" * 8))
    assert stuck.entered.wait(2.0)
    return stuck


def test_overlapping_stop_raises(pipeline, sender):
    """A second stop() while the first is still waiting is rejected."""
    pipeline.start()
    stuck = _block_loop(pipeline, sender)
    errors = []

    def first_stop():
        try:
            pipeline.stop(timeout=5.0)
        except Exception as e:
            errors.append(e)

    stopper = threading.Thread(target=first_stop)
    stopper.start()
    try:
        _wait_for(lambda: pipeline._stopping)
        with pytest.raises(RuntimeError):
            pipeline.stop(timeout=0.1)
    finally:
        stuck.release.set()
        stopper.join(5.0)

    assert errors == []
    assert pipeline.state is CaptureState.STOPPED


def test_close_times_out_and_detaches(pipeline, sender):
    """close() gives up after its timeout and the loop frees the socket on exit."""
    pipeline.start()
    stuck = _block_loop(pipeline, sender)

    started = time.monotonic()
    try:
        with pytest.raises(TimeoutError):
            pipeline.close(timeout=0.2)
        assert time.monotonic() - started < 1.0
        assert pipeline.bound_port is not None
    finally:
        stuck.release.set()

    pipeline._thread.join(2.0)
    assert not pipeline._thread.is_alive()
    assert pipeline.bound_port is None
