from __future__ import annotations

import pytest

from j2534mock.core.keys import FIXED_SEED, KeyObservation, key_to_bytes, observe_key, reference_key


def test_reference_formula_for_fixed_seed() -> None:
    assert FIXED_SEED == 0x1234
    assert reference_key() == (0x1234 * 0x4081 + 0x1234) % 0x10000
    assert reference_key() == 0x3E68


def test_reference_formula_wraps_to_16_bits() -> None:
    assert reference_key(0xFFFF) == (0xFFFF * 0x4081 + 0xFFFF) & 0xFFFF
    assert 0 <= reference_key(0xFFFF) <= 0xFFFF


def test_observe_mismatching_key() -> None:
    obs = observe_key(b"\xaa\xbb")
    assert obs.observed_key == 0xAABB
    assert obs.candidate_key == 0x3E68
    assert obs.matches is False


def test_observe_matching_key() -> None:
    obs = observe_key(key_to_bytes(0x3E68))
    assert obs.matches is True


def test_matches_is_equality() -> None:
    assert KeyObservation(seed=1, observed_key=5, candidate_key=5).matches
    assert not KeyObservation(seed=1, observed_key=5, candidate_key=6).matches


def test_observe_requires_two_bytes() -> None:
    with pytest.raises(ValueError):
        observe_key(b"\xaa")


def test_observation_to_dict() -> None:
    assert observe_key(b"\x3e\x68").to_dict() == {
        "seed": "0x1234",
        "observed_key": "0x3E68",
        "candidate_key": "0x3E68",
        "matches": True,
    }
