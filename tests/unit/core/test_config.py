from __future__ import annotations

import json
from pathlib import Path

import pytest

from j2534mock.core.config import DEFAULT_VERSIONS, MockConfig, load_config, parse_mock_config
from j2534mock.core.passthru import PassThruDevice
from j2534mock.core.trace import build_trace


def test_defaults() -> None:
    cfg = load_config(None)
    assert cfg == MockConfig()
    assert cfg.seed == 0x1234
    assert cfg.ecu_id == 0x7E8
    assert cfg.tester_id == 0x7E0
    assert cfg.versions == DEFAULT_VERSIONS
    assert cfg.trace_sinks == [{"type": "stream"}]


def test_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "mock.yaml"
    path.write_text(
        "\n".join(
            [
                "mock:",
                "  seed: '0x5678'",
                "  ecu_id: 0x7E9",
                "  channel_id: 7",
                "  versions:",
                "    dll: custom",
                "  trace:",
                "    sinks:",
                "      - type: file",
                "        path: trace.log",
            ]
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.seed == 0x5678
    assert cfg.ecu_id == 0x7E9
    assert cfg.channel_id == 7
    assert cfg.versions["dll"] == "custom"
    assert cfg.versions["api"] == "04.04"
    assert cfg.sink_configs() == [{"type": "file", "path": "trace.log", "__config_dir": str(tmp_path.resolve())}]

    trace = build_trace(cfg.sink_configs())
    dev = PassThruDevice(cfg, trace=trace)
    resp = dev.transact(bytes.fromhex("000007E0022703"))
    trace.close()
    assert resp is not None
    assert resp.data == bytes.fromhex("000007E9046703" + "5678")
    assert (tmp_path / "trace.log").exists()


def test_json_config(tmp_path: Path) -> None:
    path = tmp_path / "mock.json"
    path.write_text(json.dumps({"mock": {"channel_id": 5}}), encoding="utf-8")
    assert load_config(path).channel_id == 5


def test_empty_yaml_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.seed == 0x1234
    assert cfg.config_dir == tmp_path.resolve()


@pytest.mark.parametrize(
    "merged",
    [
        {"mock": []},
        {"mock": {"seeed": 1}},
        {"mock": {"seed": "twelve"}},
        {"mock": {"seed": True}},
        {"mock": {"seed": "0x10000"}},
        {"mock": {"seed": -1}},
        {"mock": {"versions": "2.0"}},
        {"mock": {"trace": {"sinks": "stream"}}},
    ],
)
def test_invalid_configs(merged: dict) -> None:
    with pytest.raises(ValueError):
        parse_mock_config(config_dir=None, merged=merged)


def test_unsupported_file_type(tmp_path: Path) -> None:
    path = tmp_path / "mock.toml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_seed_boundaries_accepted() -> None:
    assert parse_mock_config(config_dir=None, merged={"mock": {"seed": 0}}).seed == 0
    assert parse_mock_config(config_dir=None, merged={"mock": {"seed": "0xFFFF"}}).seed == 0xFFFF
