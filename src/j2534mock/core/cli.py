from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from j2534mock import __version__
from j2534mock.core.config import MockConfig, load_config
from j2534mock.core.frame import build_request
from j2534mock.core.isotp import parse_isotp_frame
from j2534mock.core.keys import key_to_bytes, reference_key
from j2534mock.core.passthru import PassThruDevice
from j2534mock.core.trace import build_trace


def _hex_int(s: str) -> int:
    return int(s, 16)


def _parse_hex(text: str) -> bytes:
    cleaned = "".join(text.replace(":", " ").split())
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise SystemExit(f"Invalid hex frame: {text!r}") from e


def _load(args: argparse.Namespace) -> MockConfig:
    path = Path(args.config) if args.config else None
    if path is not None and not path.exists():
        raise SystemExit(f"Config file not found: {path}")
    return load_config(path)


def _read_frame_file(path: Path) -> list[bytes]:
    if not path.exists():
        raise SystemExit(f"Frame file not found: {path}")
    frames: list[bytes] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            frames.append(_parse_hex(line))
    return frames


def _read_can_log(path: Path, tester_id: int) -> list[bytes]:
    if not path.exists():
        raise SystemExit(f"CAN log not found: {path}")
    try:
        import can  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("python-can is required for --can-log") from e

    frames: list[bytes] = []
    with can.LogReader(str(path)) as reader:
        for msg in reader:
            if msg.is_error_frame or msg.is_remote_frame:
                continue
            if int(msg.arbitration_id) != int(tester_id):
                continue
            try:
                parsed = parse_isotp_frame(bytes(msg.data))
            except ValueError:
                continue
            # Multi-frame transfers and flow control are not requests on their own.
            if parsed.frame_type != "sf" or not parsed.payload:
                continue
            frames.append(build_request(parsed.payload, arbitration_id=int(msg.arbitration_id)))
    return frames


def _exchange_line(request: bytes, response: bytes | None) -> str:
    resp_s = response.hex(" ") if response is not None else "<no data>"
    return f"{request.hex(' ')}  ->  {resp_s}"


def _cmd_handshake(args: argparse.Namespace) -> int:
    cfg = _load(args)
    key = args.key if args.key is not None else reference_key(cfg.seed)

    trace = build_trace(cfg.sink_configs())
    device = PassThruDevice(cfg, trace=trace)
    try:
        _, device_id = device.open()
        _, channel_id = device.connect(device_id, cfg.protocol_id)
        device.start_msg_filter(channel_id, 3)

        script = [
            bytes([0x10, 0x03]),
            bytes([0x27, 0x03]),
            bytes([0x27, 0x04]) + key_to_bytes(key),
        ]
        for diag in script:
            frame = build_request(diag, arbitration_id=cfg.tester_id)
            resp = device.transact(frame, channel_id)
            print(_exchange_line(frame, resp.data if resp is not None else None))

        device.disconnect(channel_id)
        device.close(device_id)
    finally:
        trace.close()

    print(json.dumps(device.state.summary(), ensure_ascii=False, indent=2))
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    cfg = _load(args)

    frames: list[bytes] = [_parse_hex(f) for f in args.frames]
    if args.file:
        frames.extend(_read_frame_file(Path(args.file)))
    if args.can_log:
        frames.extend(_read_can_log(Path(args.can_log), cfg.tester_id))
    if not frames:
        raise SystemExit("No frames to replay")

    trace = build_trace(cfg.sink_configs())
    device = PassThruDevice(cfg, trace=trace)
    try:
        for frame in frames:
            resp = device.transact(frame)
            print(_exchange_line(frame, resp.data if resp is not None else None))
    finally:
        trace.close()

    if args.summary:
        print(json.dumps(device.state.summary(), ensure_ascii=False, indent=2))
    return 0


def _cmd_formula(args: argparse.Namespace) -> int:
    seed = args.seed
    out: dict[str, Any] = {
        "seed": f"0x{seed & 0xFFFF:04X}",
        "candidate_key": f"0x{reference_key(seed):04X}",
    }
    print(json.dumps(out, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="j2534mock",
        description="j2534mock - scripted J2534 passthrough for observing SecurityAccess key exchange",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    hs_p = subparsers.add_parser("handshake", help="Run a scripted 10 03 / 27 03 / 27 04 exchange")
    hs_p.add_argument("--config", default=None, help="YAML/JSON config file (default: built-in defaults)")
    hs_p.add_argument(
        "--key",
        type=_hex_int,
        default=None,
        help="16-bit key to send in 27 04 (default: reference formula for the configured seed)",
    )
    hs_p.set_defaults(func=_cmd_handshake)

    rp_p = subparsers.add_parser("replay", help="Feed request frames through the mock and print responses")
    rp_p.add_argument("frames", nargs="*", help="Hex frames, e.g. '000007E0021003'")
    rp_p.add_argument("--file", default=None, help="Text file with one hex frame per line")
    rp_p.add_argument("--can-log", default=None, help="CAN capture readable by python-can (asc, blf, csv, log, ...)")
    rp_p.add_argument("--config", default=None, help="YAML/JSON config file (default: built-in defaults)")
    rp_p.add_argument("--summary", action="store_true", help="Print session counters after replay")
    rp_p.set_defaults(func=_cmd_replay)

    fm_p = subparsers.add_parser("formula", help="Print the reference key for a seed")
    fm_p.add_argument("--seed", type=_hex_int, default=0x1234, help="Seed (hex, default: %(default)#x)")
    fm_p.set_defaults(func=_cmd_formula)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))
