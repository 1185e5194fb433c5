from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from j2534mock.core.passthru import PassThruDevice
from j2534mock.core.trace import (
    JsonlTraceSink,
    MultiTraceSink,
    StreamTraceSink,
    TextTraceSink,
    build_trace,
    create_sink,
    format_event,
    hex_bytes,
)


def test_hex_bytes_truncates() -> None:
    assert hex_bytes(b"\x00\x07\xe0") == "00 07 E0"
    assert len(hex_bytes(bytes(64)).split()) == 32


def test_format_key_observation() -> None:
    line = format_event(
        {
            "event": "key_observation",
            "seed": "0x1234",
            "observed_key": "0xAABB",
            "candidate_key": "0x3E68",
            "matches": False,
        }
    )
    assert "key=0xAABB" in line
    assert "DIFFERENT" in line


def test_format_lifecycle() -> None:
    assert format_event({"event": "lifecycle", "call": "PassThruDisconnect", "args": {"channel_id": 1}}) == (
        "PassThruDisconnect(channel_id=1)"
    )


def test_format_unknown_event_falls_back_to_json() -> None:
    assert json.loads(format_event({"event": "other", "x": 1})) == {"event": "other", "x": 1}


def test_jsonl_sink(tmp_path: Path) -> None:
    path = tmp_path / "trace.jsonl"
    sink = JsonlTraceSink(path)
    dev = PassThruDevice(trace=sink)
    dev.transact(bytes.fromhex("000007E0042704AABB"))
    sink.close()

    events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [e["event"] for e in events] == ["tx", "decoded", "key_observation", "rx"]
    assert events[2]["candidate_key"] == "0x3E68"


def test_text_sink_appends(tmp_path: Path) -> None:
    path = tmp_path / "j2534_mock.log"
    for _ in range(2):
        sink = TextTraceSink(path)
        PassThruDevice(trace=sink).transact(bytes.fromhex("000007E0021003"))
        sink.close()
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 6
    assert lines[0].startswith("TX (tool->ECU) [7 bytes]: 00 00 07 E0 02 10 03")


def test_stream_sink_writes_lines() -> None:
    buf = io.StringIO()
    sink = StreamTraceSink(buf)
    PassThruDevice(trace=sink).transact(bytes.fromhex("000007E0029901"))
    out = buf.getvalue()
    assert "Unknown_0x99" in out
    assert "RX (ECU->tool)" in out


def test_default_stream_sink_uses_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    sink = create_sink("stream", {})
    sink.log({"event": "drop", "reason": "short_frame", "len": 3})
    assert "frame dropped" in capsys.readouterr().err


def test_build_trace_fans_out(tmp_path: Path) -> None:
    trace = build_trace(
        [
            {"type": "jsonl", "path": "a.jsonl", "__config_dir": str(tmp_path)},
            {"type": "file", "path": "logs/b.log", "__config_dir": str(tmp_path)},
        ]
    )
    assert isinstance(trace, MultiTraceSink)
    assert len(trace.sinks) == 2
    trace.log({"event": "lifecycle", "call": "PassThruOpen", "args": {}})
    trace.close()
    assert (tmp_path / "a.jsonl").read_text(encoding="utf-8").strip()
    assert (tmp_path / "logs" / "b.log").read_text(encoding="utf-8").strip() == "PassThruOpen()"


def test_build_trace_single_sink_is_unwrapped() -> None:
    assert not isinstance(build_trace([{"type": "null"}]), MultiTraceSink)


def test_unknown_sink_type() -> None:
    with pytest.raises(KeyError):
        create_sink("syslog", {})


def test_invalid_stream_target() -> None:
    with pytest.raises(ValueError):
        create_sink("stream", {"stream": "tty"})

