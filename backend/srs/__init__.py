"""Spaced repetition scheduling engine."""

from backend.srs.fsrs import (
    FSRS,
    CardState,
    Rating,
    ReviewLog,
    ReviewResult,
    ScheduleOption,
    SchedulingResult,
    State,
)

__all__ = [
    "FSRS",
    "CardState",
    "Rating",
    "ReviewLog",
    "ReviewResult",
    "ScheduleOption",
    "SchedulingResult",
    "State",
]
