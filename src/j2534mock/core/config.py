from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from j2534mock.core.frame import ECU_RESPONSE_ID, ISO15765, TESTER_REQUEST_ID
from j2534mock.core.keys import FIXED_SEED


DEFAULT_VERSIONS: dict[str, str] = {
    "firmware": "2.0.0",
    "dll": "2.0.0-mock",
    "api": "04.04",
}

_INT_KEYS = (
    "seed",
    "ecu_id",
    "tester_id",
    "protocol_id",
    "device_id",
    "channel_id",
    "filter_id",
)
_KNOWN_KEYS = set(_INT_KEYS) | {"versions", "trace"}


def _default_sinks() -> list[dict[str, Any]]:
    return [{"type": "stream"}]


@dataclass(frozen=True)
class MockConfig:
    config_dir: Path | None = None
    seed: int = FIXED_SEED
    ecu_id: int = ECU_RESPONSE_ID
    tester_id: int = TESTER_REQUEST_ID
    protocol_id: int = ISO15765
    device_id: int = 1
    channel_id: int = 1
    filter_id: int = 1
    versions: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_VERSIONS))
    trace_sinks: list[dict[str, Any]] = field(default_factory=_default_sinks)

    def sink_configs(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for sink in self.trace_sinks:
            sink = dict(sink)
            if self.config_dir is not None:
                sink.setdefault("__config_dir", str(self.config_dir))
            out.append(sink)
        return out


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid config: mock.{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError as e:
            raise ValueError(f"Invalid config: mock.{key} must be an integer, got {value!r}") from e
    raise ValueError(f"Invalid config: mock.{key} must be an integer")


def parse_mock_config(*, config_dir: Path | None, merged: dict[str, Any]) -> MockConfig:
    mock = merged.get("mock")
    if mock is None:
        mock = {}
    if not isinstance(mock, dict):
        raise ValueError("Invalid config: mock must be a mapping")

    unknown = sorted(set(mock) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"Unknown config key: mock.{unknown[0]}")

    kwargs: dict[str, Any] = {"config_dir": config_dir}
    for key in _INT_KEYS:
        if key in mock:
            kwargs[key] = _as_int(key, mock[key])

    if not 0 <= kwargs.get("seed", FIXED_SEED) <= 0xFFFF:
        raise ValueError("Invalid config: mock.seed must fit in 16 bits (0x0000..0xFFFF)")

    versions = mock.get("versions")
    if versions is not None:
        if not isinstance(versions, dict):
            raise ValueError("Invalid config: mock.versions must be a mapping")
        merged_versions = dict(DEFAULT_VERSIONS)
        merged_versions.update({str(k): str(v) for k, v in versions.items()})
        kwargs["versions"] = merged_versions

    trace = mock.get("trace")
    if trace is not None:
        if not isinstance(trace, dict):
            raise ValueError("Invalid config: mock.trace must be a mapping")
        sinks = trace.get("sinks", [])
        if not isinstance(sinks, list) or not all(isinstance(s, dict) for s in sinks):
            raise ValueError("Invalid config: mock.trace.sinks must be a list of mappings")
        kwargs["trace_sinks"] = [dict(s) for s in sinks]

    return MockConfig(**kwargs)


def load_config_file(path: Path) -> Any:
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    raise ValueError(f"Unsupported config file type: {path.name}")


def load_config(path: Path | None) -> MockConfig:
    if path is None:
        return MockConfig()
    path = Path(path)
    data = load_config_file(path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config: {path.name} must contain a mapping")
    return parse_mock_config(config_dir=path.resolve().parent, merged=data)


def resolve_path(config_dir: Path, maybe_path: str | None) -> Path | None:
    if maybe_path is None:
        return None
    path = Path(maybe_path)
    if path.is_absolute():
        return path
    return (config_dir / path).resolve()
