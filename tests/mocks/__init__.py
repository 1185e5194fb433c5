"""
Mock implementations for testing.
"""

from __future__ import annotations

from typing import Any

from j2534mock.core.trace import TraceSink


class RecordingSink(TraceSink):
    """
    Trace sink that keeps every event in memory.

    Usage:
        sink = RecordingSink()
        device = PassThruDevice(trace=sink)
        device.transact(frame)
        assert sink.of("key_observation")
    """

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []
        self.closed = False

    def log(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.closed = True

    def of(self, kind: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e.get("event") == kind]

    def reset(self) -> None:
        """Reset all recorded state."""
        self.events.clear()
        self.closed = False
