"""Unit tests for window normalization."""

from __future__ import annotations

import pytest

from factories import DAY_MS, NOW
from models.records import Window
from services.errors import InvalidTimeRangeError
from services.window import normalize_window


def _normalize(from_raw: int, to_raw: int) -> Window:
    return normalize_window(from_raw, to_raw, DAY_MS, clock=lambda: NOW)


def test_defaults_cover_the_last_day() -> None:
    assert _normalize(0, 0) == Window(from_ts=NOW - DAY_MS, to_ts=NOW)


def test_explicit_bounds_are_kept() -> None:
    assert _normalize(1_000, 5_000) == Window(from_ts=1_000, to_ts=5_000)


def test_missing_from_is_relative_to_explicit_to() -> None:
    to_ts = 1_600_000_000_000
    assert _normalize(0, to_ts) == Window(from_ts=to_ts - DAY_MS, to_ts=to_ts)


def test_missing_to_becomes_now() -> None:
    assert _normalize(NOW - 10, 0) == Window(from_ts=NOW - 10, to_ts=NOW)


def test_default_start_never_precedes_epoch() -> None:
    assert _normalize(0, 5_000) == Window(from_ts=0, to_ts=5_000)


@pytest.mark.parametrize("from_raw,to_raw", [(-1, 0), (0, -1), (10, 5), (NOW + 1, 0)])
def test_invalid_ranges_are_rejected(from_raw: int, to_raw: int) -> None:
    with pytest.raises(InvalidTimeRangeError):
        _normalize(from_raw, to_raw)


@pytest.mark.parametrize(
    "from_raw,to_raw",
    [(0, 0), (0, 5_000), (0, DAY_MS), (1_000, 0), (1_000, 1_000), (1_000, 9_000), (0, NOW + DAY_MS)],
)
def test_normalization_is_idempotent(from_raw: int, to_raw: int) -> None:
    once = _normalize(from_raw, to_raw)
    twice = _normalize(once.from_ts, once.to_ts)
    assert twice == once
