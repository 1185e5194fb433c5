"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Ensure src is in path
_SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


@pytest.fixture
def recording_sink():
    from tests.mocks import RecordingSink

    return RecordingSink()


@pytest.fixture
def device(recording_sink):
    from j2534mock.core.passthru import PassThruDevice

    return PassThruDevice(trace=recording_sink)


@pytest.fixture
def frame_factory():
    """Factory for tester frames: frame_factory("27 03") -> id + length + bytes."""
    from j2534mock.core.frame import build_request

    def _create(diag_hex: str, arbitration_id: int = 0x7E0) -> bytes:
        return build_request(bytes.fromhex(diag_hex), arbitration_id=arbitration_id)

    return _create
