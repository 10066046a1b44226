"""
Adaptive progress cadence for gban propagation.

Reporting every N targets is fine for a handful of guilds but floods the
status message at thousands, so the step grows with the snapshot size. A
second, time-based throttle keeps a fast actuator from editing the message
more often than ``min_interval`` seconds.
"""

from __future__ import annotations

from typing import Tuple

# (upper bound inclusive, interval); anything larger uses OVERFLOW_INTERVAL
UPDATE_INTERVAL_STEPS: Tuple[Tuple[int, int], ...] = (
    (100, 10),
    (200, 20),
    (500, 30),
    (1000, 50),
    (2000, 100),
    (5000, 200),
)
OVERFLOW_INTERVAL = 500


def calculate_update_interval(total: int) -> int:
    """Return how many processed targets separate two progress updates.

    >>> calculate_update_interval(150)
    20
    >>> calculate_update_interval(3000)
    200
    """
    for upper_bound, interval in UPDATE_INTERVAL_STEPS:
        if total <= upper_bound:
            return interval
    return OVERFLOW_INTERVAL


def should_emit_progress(
    processed: int,
    total: int,
    interval: int,
    now: float,
    last_update: float,
    min_interval: float,
) -> bool:
    """Decide whether a progress update is due after ``processed`` targets.

    Both throttles must agree: the count has to hit a multiple of
    ``interval`` (or the last target), and at least ``min_interval``
    seconds must have passed since ``last_update``.
    """
    if processed <= 0:
        return False
    on_step = processed % interval == 0 or processed == total
    return on_step and (now - last_update) >= min_interval
