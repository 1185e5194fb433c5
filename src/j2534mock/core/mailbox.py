from __future__ import annotations

import threading
from dataclasses import dataclass, field

from j2534mock.core.frame import PassThruMsg


@dataclass
class ResponseMailbox:
    """
    Single-slot hand-off from the write path to the read path.

    store() always wins over an unread response; take() empties the slot.
    """

    _lock: threading.Lock = field(default_factory=threading.Lock)
    _pending: PassThruMsg | None = None

    def store(self, msg: PassThruMsg) -> bool:
        """Returns True when an unread response was discarded."""
        with self._lock:
            overwritten = self._pending is not None
            self._pending = msg
            return overwritten

    def take(self) -> PassThruMsg | None:
        with self._lock:
            msg = self._pending
            self._pending = None
            return msg

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None
