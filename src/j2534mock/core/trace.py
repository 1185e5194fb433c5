from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TextIO

from j2534mock.core.config import resolve_path


MAX_TRACE_BYTES = 32


def utc_ts() -> str:
    return datetime.now(timezone.utc).isoformat()


def hex_bytes(data: bytes, limit: int = MAX_TRACE_BYTES) -> str:
    return " ".join(f"{b:02X}" for b in bytes(data)[:limit])


def format_event(event: dict[str, Any]) -> str:
    kind = event.get("event")
    if kind == "tx":
        return f"TX (tool->ECU) [{event.get('len', 0)} bytes]: {event.get('data', '')}"
    if kind == "rx":
        return f"RX (ECU->tool) [{event.get('len', 0)} bytes]: {event.get('data', '')}"
    if kind == "decoded":
        sub = event.get("subfunction")
        sub_s = f"0x{sub:02X}" if isinstance(sub, int) else "-"
        return (
            f"  -> {event.get('service_name')} (sid=0x{int(event.get('sid', 0)):02X}, sub={sub_s})"
            f" rule={event.get('rule_id')}"
        )
    if kind == "key_observation":
        verdict = "MATCHES reference formula" if event.get("matches") else "DIFFERENT from reference formula"
        return (
            f"  *** sendKey seed={event.get('seed')} key={event.get('observed_key')}"
            f" candidate={event.get('candidate_key')} ({verdict}) ***"
        )
    if kind == "drop":
        return f"  -> frame dropped ({event.get('reason')}, {event.get('len', 0)} bytes)"
    if kind == "lifecycle":
        args = event.get("args") or {}
        arg_s = ", ".join(f"{k}={v}" for k, v in args.items())
        return f"{event.get('call')}({arg_s})"
    return json.dumps(event, ensure_ascii=False)


class TraceSink(ABC):
    @abstractmethod
    def log(self, event: dict[str, Any]) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class JsonlTraceSink(TraceSink):
    def __init__(self, path: Path) -> None:
        self._path = path
        self._fp = path.open("a", encoding="utf-8", newline="\n")

    def log(self, event: dict[str, Any]) -> None:
        self._fp.write(json.dumps(event, ensure_ascii=False) + "\n")
        self._fp.flush()

    def close(self) -> None:
        self._fp.close()


class TextTraceSink(TraceSink):
    def __init__(self, path: Path) -> None:
        self._path = path
        self._fp = path.open("a", encoding="utf-8", newline="\n")

    def log(self, event: dict[str, Any]) -> None:
        self._fp.write(format_event(event) + "\n")
        self._fp.flush()

    def close(self) -> None:
        self._fp.close()


class StreamTraceSink(TraceSink):
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def log(self, event: dict[str, Any]) -> None:
        # Resolved per call so pytest's capsys/capfd see the output.
        stream = self._stream or sys.stderr
        stream.write(format_event(event) + "\n")
        stream.flush()

    def close(self) -> None:
        return None


class NullTraceSink(TraceSink):
    def log(self, event: dict[str, Any]) -> None:
        return None

    def close(self) -> None:
        return None


class MultiTraceSink(TraceSink):
    def __init__(self, sinks: list[TraceSink]) -> None:
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[TraceSink]:
        return list(self._sinks)

    def log(self, event: dict[str, Any]) -> None:
        for sink in self._sinks:
            sink.log(event)

    def close(self) -> None:
        for sink in self._sinks:
            sink.close()


_SINKS: dict[str, Callable[[dict[str, Any]], TraceSink]] = {}


def register_sink(name: str) -> Callable[[Callable[[dict[str, Any]], TraceSink]], Callable[[dict[str, Any]], TraceSink]]:
    def _decorator(factory: Callable[[dict[str, Any]], TraceSink]) -> Callable[[dict[str, Any]], TraceSink]:
        _SINKS[name] = factory
        return factory

    return _decorator


def create_sink(sink_type: str, config: dict[str, Any]) -> TraceSink:
    if sink_type not in _SINKS:
        raise KeyError(f"Unknown sink type: {sink_type}")
    return _SINKS[sink_type](config)


def _sink_path(config: dict[str, Any], default_name: str) -> Path:
    path = Path(str(config.get("path") or default_name))
    config_dir = config.get("__config_dir")
    if config_dir:
        path = resolve_path(Path(str(config_dir)), str(path)) or path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


@register_sink("jsonl")
def jsonl_sink(config: dict[str, Any]) -> TraceSink:
    return JsonlTraceSink(_sink_path(config, "j2534_mock.jsonl"))


@register_sink("file")
def file_sink(config: dict[str, Any]) -> TraceSink:
    return TextTraceSink(_sink_path(config, "j2534_mock.log"))


@register_sink("stream")
def stream_sink(config: dict[str, Any]) -> TraceSink:
    name = str(config.get("stream", "stderr")).lower()
    if name == "stdout":
        return StreamTraceSink(sys.stdout)
    if name != "stderr":
        raise ValueError(f"Invalid stream sink target: {name}")
    return StreamTraceSink()


@register_sink("null")
def null_sink(_config: dict[str, Any]) -> TraceSink:
    return NullTraceSink()


def build_trace(sink_configs: list[dict[str, Any]]) -> TraceSink:
    sinks: list[TraceSink] = []
    for cfg in sink_configs:
        cfg = dict(cfg)
        sink_type = str(cfg.get("type", "stream")).lower()
        sinks.append(create_sink(sink_type, cfg))
    if len(sinks) == 1:
        return sinks[0]
    return MultiTraceSink(sinks)
