"""Turn user supplied ``from``/``to`` values into a concrete time window."""

from __future__ import annotations

import time
from typing import Callable

from models.records import Window
from services.errors import InvalidTimeRangeError

_INVERTED = "Invalid time range. 'from' must not be later than 'to'."


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def normalize_window(
    from_raw: int,
    to_raw: int,
    default_window_ms: int,
    clock: Callable[[], int] = now_ms,
) -> Window:
    """Apply defaults to a raw window; ``0`` means "unspecified".

    A missing ``to`` becomes the current time and a missing ``from`` lies
    ``default_window_ms`` before ``to`` (never before the epoch). Both ends
    are inclusive.
    """
    if from_raw < 0 or to_raw < 0:
        raise InvalidTimeRangeError()
    if from_raw and to_raw and from_raw > to_raw:
        raise InvalidTimeRangeError(_INVERTED)

    to_ts = to_raw if to_raw else clock()
    from_ts = from_raw if from_raw else max(to_ts - default_window_ms, 0)
    # A "from" in the future against a defaulted "to" is inverted as well.
    if from_ts > to_ts:
        raise InvalidTimeRangeError(_INVERTED)
    return Window(from_ts=from_ts, to_ts=to_ts)
