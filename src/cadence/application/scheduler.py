"""
SM-2 scheduler.

This is a pure computation module with no I/O. `advance` takes an immutable
memory state and returns a new one; callers persist the result.

Quality ratings:
    0 - Complete blackout, no recall
    1 - Incorrect, but upon seeing the answer, remembered
    2 - Incorrect, but the answer seemed easy to recall
    3 - Correct, but with significant difficulty
    4 - Correct, with some hesitation
    5 - Perfect, instant recall
"""

import math
from datetime import datetime, timedelta

from cadence.domain.constants import (
    FAILED_INTERVAL,
    FIRST_INTERVAL,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from cadence.domain.models import MemoryState


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves going up (2.5 -> 3, -0.5 -> 0).

    Python's built-in round() rounds halves to even, which would schedule
    round(5 * 2.5) = 12 instead of 13.
    """
    return int(math.floor(value + 0.5))


def normalize_quality(quality: float) -> int:
    """
    Round, then clamp to [0, 5].

    Out-of-range values are clamped before rounding, which gives the same
    result and keeps huge ints and infinities away from floor(). NaN counts
    as a blackout (0).
    """
    if isinstance(quality, float) and math.isnan(quality):
        return MIN_QUALITY
    if quality >= MAX_QUALITY:
        return MAX_QUALITY
    if quality <= MIN_QUALITY:
        return MIN_QUALITY
    return max(MIN_QUALITY, min(MAX_QUALITY, round_half_up(quality)))


def next_ease_factor(ease_factor: float, quality: int) -> float:
    """
    SM-2 ease update. `quality` must already be normalized.

    q=5 adds 0.1, q=4 leaves it unchanged, q=0 subtracts 0.8.
    """
    penalty = MAX_QUALITY - quality
    new_ease = ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02))
    if new_ease < MIN_EASE_FACTOR:
        new_ease = MIN_EASE_FACTOR
    return new_ease


def advance(quality: float, state: MemoryState) -> MemoryState:
    """
    Advance a card's memory state given a recall-quality rating.

    Args:
        quality: Self-reported rating. Out-of-range and fractional values are
            normalized, never rejected.
        state: The card's current memory state.

    Returns:
        The next MemoryState. The caller computes the new due date with
        `next_due` and records the review.
    """
    q = normalize_quality(quality)

    if q < PASSING_QUALITY:
        repetitions = 0
        interval = FAILED_INTERVAL
    else:
        if state.repetitions == 0:
            interval = FIRST_INTERVAL
        elif state.repetitions == 1:
            interval = SECOND_INTERVAL
        else:
            interval = round_half_up(state.interval * state.ease_factor)
        repetitions = state.repetitions + 1

    # Prior ease and clamped quality only; never the post-update interval.
    ease_factor = next_ease_factor(state.ease_factor, q)

    return MemoryState(ease_factor=ease_factor, interval=interval, repetitions=repetitions)


def next_due(now: datetime, interval: int) -> datetime:
    return now + timedelta(days=interval)
