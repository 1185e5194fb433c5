"""
SecurityAccess key observation.

The mock hands out a fixed seed, so whatever key the tool under test sends
back can be compared against a reference seed->key formula. A match means
the tool uses that formula for this security level; a mismatch means the
algorithm is something else and the observed key is the data point to keep.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


FIXED_SEED = 0x1234
KEY_MULTIPLIER = 0x4081
KEY_MASK = 0xFFFF


@dataclass(frozen=True)
class KeyObservation:
    seed: int
    observed_key: int
    candidate_key: int

    @property
    def matches(self) -> bool:
        return self.observed_key == self.candidate_key

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": f"0x{self.seed:04X}",
            "observed_key": f"0x{self.observed_key:04X}",
            "candidate_key": f"0x{self.candidate_key:04X}",
            "matches": self.matches,
        }


def reference_key(seed: int = FIXED_SEED) -> int:
    seed &= KEY_MASK
    return (seed * KEY_MULTIPLIER + seed) & KEY_MASK


def key_from_bytes(kh: int, kl: int) -> int:
    return ((kh & 0xFF) << 8) | (kl & 0xFF)


def key_to_bytes(key: int) -> bytes:
    return (key & KEY_MASK).to_bytes(2, "big")


def observe_key(key_bytes: bytes, *, seed: int = FIXED_SEED) -> KeyObservation:
    if len(key_bytes) < 2:
        raise ValueError("sendKey requires a 2-byte key")
    return KeyObservation(
        seed=seed & KEY_MASK,
        observed_key=key_from_bytes(key_bytes[0], key_bytes[1]),
        candidate_key=reference_key(seed),
    )
