"""FSRS (Free Spaced Repetition Scheduler) algorithm implementation.

A simplified implementation of FSRS v4 for the Sage flashcard app.
Reference: https://github.com/open-spaced-repetition/fsrs4anki

Key concepts:
- Stability (S): The number of days after which retention drops to the target (90%).
- Difficulty (D): A value between 1 and 10 representing inherent card hardness.
- Retrievability (R): The probability of recall at a given time since last review.
- Rating: 1=Again, 2=Hard, 3=Good, 4=Easy

The scheduler is pure: every call takes the review time explicitly and
returns a new CardState instead of mutating the one it was given.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum, IntEnum

from backend.config import Settings, settings

logger = logging.getLogger(__name__)

# FSRS v4 default parameters (fixed configuration, not learned here)
# w[0..3]: initial stability for ratings Again/Hard/Good/Easy on first review
# w[4..5]: initial difficulty (mean, per-rating step)
# w[6]: difficulty update step
# w[8..10]: stability growth shape (scale, stability decay, retrievability gain)
# w[15..16]: hard penalty / easy bonus
DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.4,  # w0: initial stability for Again
    0.6,  # w1: initial stability for Hard
    2.4,  # w2: initial stability for Good
    5.8,  # w3: initial stability for Easy
    4.93,  # w4: initial difficulty
    0.94,  # w5: initial difficulty step per rating
    0.86,  # w6: difficulty update step
    0.01,  # w7
    1.49,  # w8: stability increase factor (exponent)
    0.14,  # w9: stability decay exponent
    0.94,  # w10: retrievability gain
    2.18,  # w11
    0.05,  # w12
    0.34,  # w13
    1.26,  # w14
    0.29,  # w15: hard penalty
    2.61,  # w16: easy bonus
)
WEIGHT_COUNT = len(DEFAULT_WEIGHTS)

DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500  # days

# Bounds
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
MIN_STABILITY = 0.1  # Minimum 0.1 days (~2.4 hours)

# Learning steps (minutes)
AGAIN_STEP_MINUTES = 1
HARD_STEP_MINUTES = 5
GOOD_STEP_MINUTES = 10

HARD_INTERVAL_FACTOR = 0.8
EASY_INTERVAL_FACTOR = 1.3
LAPSE_STABILITY_FACTOR = 0.2
EASY_GRADUATION_BONUS = 1.3


class Rating(IntEnum):
    """How well the learner recalled a card. Ordered Again < Hard < Good < Easy."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def key(self) -> str:
        """Lowercase name used in previews and API payloads."""
        return self.name.lower()

    @classmethod
    def coerce(cls, value: Rating | int | str) -> Rating:
        """Turn a raw rating into a Rating, clamping integers into 1-4.

        Strings may be digits or rating names ("good", "Easy").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.lower() in _RATING_NAMES:
                return _RATING_NAMES[text.lower()]
            try:
                value = int(text)
            except ValueError:
                raise ValueError(f"Unsupported rating: {value!r}") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Unsupported rating: {value!r}")
        clamped = max(cls.AGAIN, min(cls.EASY, value))
        if clamped != value:
            logger.warning("Rating %d out of range, clamped to %d", value, clamped)
        return cls(clamped)


_RATING_NAMES = {rating.key: rating for rating in Rating}


class State(str, Enum):
    """Scheduling phase of a card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class CardState:
    """The SRS state of a card for one learner."""

    stability: float  # Days until retention = request_retention
    difficulty: float  # 1-10, inherent difficulty (0 before the first review)
    due: datetime  # When the card is next due
    reps: int  # Scheduling events (lapses in review are not counted)
    lapses: int  # Times the card was rated Again outside the New state
    state: State = State.NEW
    elapsed_days: float = 0.0  # Days since the previous review, at review time
    scheduled_days: float = 0.0  # Interval chosen at the most recent review
    last_review: datetime | None = None


@dataclass(frozen=True)
class ScheduleOption:
    """The hypothetical outcome of one rating."""

    due: datetime
    scheduled_days: float
    state: State


@dataclass(frozen=True)
class SchedulingResult:
    """Preview of all four outcomes for a card, without committing any."""

    again: ScheduleOption
    hard: ScheduleOption
    good: ScheduleOption
    easy: ScheduleOption

    def __getitem__(self, rating: Rating | int | str) -> ScheduleOption:
        return getattr(self, Rating.coerce(rating).key)

    def __iter__(self) -> Iterator[tuple[Rating, ScheduleOption]]:
        for rating in Rating:
            yield rating, self[rating]


@dataclass(frozen=True)
class ReviewLog:
    """Immutable record of one review, for analytics and statistics."""

    rating: Rating
    prior_state: State
    elapsed_days: float
    scheduled_days: float
    reviewed_at: datetime
    review_time_ms: int = 0


@dataclass(frozen=True)
class ReviewResult:
    """The result of applying a review to a card."""

    new_state: CardState
    log: ReviewLog
    retrievability: float  # Estimated recall probability at time of review

    @property
    def interval_days(self) -> float:
        return self.new_state.scheduled_days


@dataclass(frozen=True)
class FSRS:
    """Free Spaced Repetition Scheduler.

    Configuration is fixed for the lifetime of an instance; build a new
    instance to schedule with different weights or retention.
    """

    weights: Sequence[float] = DEFAULT_WEIGHTS
    request_retention: float = DEFAULT_REQUEST_RETENTION
    maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL
    _interval_scale: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        weights = tuple(float(w) for w in self.weights)
        if len(weights) != WEIGHT_COUNT:
            raise ValueError(f"Expected {WEIGHT_COUNT} weights, got {len(weights)}")
        if not 0 < self.request_retention < 1:
            raise ValueError(
                f"request_retention must be in (0, 1), got {self.request_retention}"
            )
        if self.maximum_interval < 1:
            raise ValueError(f"maximum_interval must be >= 1, got {self.maximum_interval}")
        object.__setattr__(self, "weights", weights)
        # r^(-1/3): how much further than the stability we can wait at this retention
        object.__setattr__(self, "_interval_scale", self.request_retention ** (-1 / 3))

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> FSRS:
        """Build a scheduler from application settings."""
        cfg = cfg or settings
        return cls(
            weights=cfg.weights or DEFAULT_WEIGHTS,
            request_retention=cfg.request_retention,
            maximum_interval=cfg.maximum_interval,
        )

    @property
    def w(self) -> tuple[float, ...]:
        return self.weights  # type: ignore[return-value]

    # --- Public API ---

    def create_new_card(self, now: datetime) -> CardState:
        """Create the state for a card that has never been reviewed, due at *now*."""
        return CardState(
            stability=0.0,
            difficulty=0.0,
            due=now,
            reps=0,
            lapses=0,
            state=State.NEW,
            elapsed_days=0.0,
            scheduled_days=0.0,
            last_review=None,
        )

    def schedule(self, card: CardState, now: datetime) -> SchedulingResult:
        """Preview the outcome of each rating without committing any of them."""
        card = self._sanitize(card)
        if card.state is State.NEW:
            return self._schedule_new(now)
        return self._schedule_review(card, now)

    def review(self, card: CardState, rating: Rating | int | str, now: datetime) -> CardState:
        """Apply a review rating and return the new card state."""
        return self.review_with_log(card, rating, now).new_state

    def review_with_log(
        self,
        card: CardState,
        rating: Rating | int | str,
        now: datetime,
        review_time_ms: int = 0,
    ) -> ReviewResult:
        """Apply a review rating and build the matching review-log record.

        Args:
            card: Current card state.
            rating: Review rating (1=Again, 2=Hard, 3=Good, 4=Easy).
            now: When the review happened.
            review_time_ms: How long the learner took to answer.

        Returns:
            ReviewResult with the new card state, the log entry and the
            retrievability the card had at review time.
        """
        rating = Rating.coerce(rating)
        card = self._sanitize(card)
        elapsed_days = self._elapsed_days(card, now)

        if card.state is State.NEW:
            retrievability = 1.0
            new_state = self._review_new(rating, now)
        elif card.state in (State.LEARNING, State.RELEARNING):
            retrievability = self.retrievability(card.stability, elapsed_days)
            new_state = self._review_learning(card, rating, elapsed_days, now)
        else:
            retrievability = self.retrievability(card.stability, elapsed_days)
            new_state = self._review_review(card, rating, elapsed_days, now)

        logger.debug(
            "Reviewed %s card as %s after %.2f days: %s s=%.2f d=%.2f next in %s days",
            card.state.value,
            rating.key,
            elapsed_days,
            new_state.state.value,
            new_state.stability,
            new_state.difficulty,
            new_state.scheduled_days,
        )

        log = ReviewLog(
            rating=rating,
            prior_state=card.state,
            elapsed_days=elapsed_days,
            scheduled_days=new_state.scheduled_days,
            reviewed_at=now,
            review_time_ms=max(0, int(review_time_ms)),
        )
        return ReviewResult(new_state=new_state, log=log, retrievability=retrievability)

    # --- Previews ---

    def _schedule_new(self, now: datetime) -> SchedulingResult:
        easy_days = self.w[3]
        return SchedulingResult(
            again=ScheduleOption(_add_minutes(now, AGAIN_STEP_MINUTES), 0, State.LEARNING),
            hard=ScheduleOption(_add_minutes(now, HARD_STEP_MINUTES), 0, State.LEARNING),
            good=ScheduleOption(_add_minutes(now, GOOD_STEP_MINUTES), 0, State.LEARNING),
            easy=ScheduleOption(_add_days(now, easy_days), easy_days, State.REVIEW),
        )

    def _schedule_review(self, card: CardState, now: datetime) -> SchedulingResult:
        s = card.stability
        interval_hard = max(1, round_half_up(s * HARD_INTERVAL_FACTOR))
        interval_good = max(interval_hard + 1, round_half_up(s * self._interval_scale))
        interval_easy = max(
            interval_good + 1,
            round_half_up(s * EASY_INTERVAL_FACTOR * self._interval_scale),
        )
        # Hard cap on every interval; ordering collapses to ties at the cap
        interval_hard = min(interval_hard, self.maximum_interval)
        interval_good = min(interval_good, self.maximum_interval)
        interval_easy = min(interval_easy, self.maximum_interval)

        return SchedulingResult(
            again=ScheduleOption(_add_minutes(now, AGAIN_STEP_MINUTES), 0, State.RELEARNING),
            hard=ScheduleOption(_add_days(now, interval_hard), interval_hard, State.REVIEW),
            good=ScheduleOption(_add_days(now, interval_good), interval_good, State.REVIEW),
            easy=ScheduleOption(_add_days(now, interval_easy), interval_easy, State.REVIEW),
        )

    # --- Transitions ---

    def _review_new(self, rating: Rating, now: datetime) -> CardState:
        option = self._schedule_new(now)[rating]
        return CardState(
            stability=self.w[rating - 1],  # w0..w3
            difficulty=self._initial_difficulty(rating),
            due=option.due,
            reps=1,
            lapses=1 if rating is Rating.AGAIN else 0,
            state=option.state,
            elapsed_days=0.0,
            scheduled_days=option.scheduled_days,
            last_review=now,
        )

    def _review_learning(
        self,
        card: CardState,
        rating: Rating,
        elapsed_days: float,
        now: datetime,
    ) -> CardState:
        if rating is Rating.AGAIN:
            return replace(
                card,
                lapses=card.lapses + 1,
                due=_add_minutes(now, AGAIN_STEP_MINUTES),
                elapsed_days=elapsed_days,
                scheduled_days=0,
                last_review=now,
            )
        if rating is Rating.HARD:
            return replace(
                card,
                reps=card.reps + 1,
                due=_add_minutes(now, HARD_STEP_MINUTES),
                elapsed_days=elapsed_days,
                scheduled_days=0,
                last_review=now,
            )

        # Good or Easy: graduate to review
        stability = self.stability_after_success(card, rating, elapsed_days)
        if rating is Rating.EASY:
            stability = min(stability * EASY_GRADUATION_BONUS, float(self.maximum_interval))
        scheduled_days = max(1, round_half_up(stability))
        return replace(
            card,
            stability=stability,
            difficulty=self.update_difficulty(card.difficulty, rating),
            reps=card.reps + 1,
            state=State.REVIEW,
            due=_add_days(now, scheduled_days),
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            last_review=now,
        )

    def _review_review(
        self,
        card: CardState,
        rating: Rating,
        elapsed_days: float,
        now: datetime,
    ) -> CardState:
        if rating is Rating.AGAIN:
            # Lapse: reps is left unchanged, a forgotten card is not a repetition
            return replace(
                card,
                stability=max(MIN_STABILITY, card.stability * LAPSE_STABILITY_FACTOR),
                lapses=card.lapses + 1,
                state=State.RELEARNING,
                due=_add_minutes(now, AGAIN_STEP_MINUTES),
                elapsed_days=elapsed_days,
                scheduled_days=0,
                last_review=now,
            )

        new_stability = self.stability_after_success(card, rating, elapsed_days)
        option = self._schedule_review(replace(card, stability=new_stability), now)[rating]
        return replace(
            card,
            stability=new_stability,
            difficulty=self.update_difficulty(card.difficulty, rating),
            reps=card.reps + 1,
            state=option.state,
            due=option.due,
            elapsed_days=elapsed_days,
            scheduled_days=option.scheduled_days,
            last_review=now,
        )

    # --- Memory model ---

    def _initial_difficulty(self, rating: Rating) -> float:
        # D0 = w4 - (rating - 3) * w5
        return _clamp(self.w[4] - (rating - 3) * self.w[5], MIN_DIFFICULTY, MAX_DIFFICULTY)

    def update_difficulty(self, difficulty: float, rating: Rating | int) -> float:
        """D' = D - w6 * (rating - 3), kept within [1, 10]."""
        return _clamp(difficulty - self.w[6] * (rating - 3), MIN_DIFFICULTY, MAX_DIFFICULTY)

    @staticmethod
    def retrievability(stability: float, elapsed_days: float) -> float:
        """Calculate the probability of recall given elapsed time and stability.

        Uses the power forgetting curve: R = (1 + t / (9 * S))^(-1)
        """
        if stability <= 0:
            return 0.0
        return (1 + elapsed_days / (9 * stability)) ** -1

    def stability_after_success(
        self,
        card: CardState,
        rating: Rating | int,
        elapsed_days: float,
    ) -> float:
        """Calculate new stability after a successful review (rating >= 2).

        S' = S * (1 + e^(w8) * (11 - D) * S^(-w9) * (e^((1-R) * w10) - 1) * penalty * bonus)
        """
        w = self.w
        # A card that never got a memory state is treated as S=1, D=5
        s = card.stability or 1.0
        d = card.difficulty or 5.0
        r = self.retrievability(s, elapsed_days)

        hard_penalty = w[15] if rating == Rating.HARD else 1.0
        easy_bonus = w[16] if rating == Rating.EASY else 1.0

        new_stability = s * (
            1
            + math.exp(w[8])
            * (11 - d)
            * s ** (-w[9])
            * (math.exp((1 - r) * w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )
        return _clamp(new_stability, MIN_STABILITY, float(self.maximum_interval))

    # --- Input hygiene ---

    def _sanitize(self, card: CardState) -> CardState:
        """Clamp out-of-range numeric fields; reject unknown states."""
        state = State(card.state)
        changes: dict[str, object] = {}
        if state is not card.state:
            changes["state"] = state
        for name in ("stability", "difficulty", "elapsed_days", "scheduled_days"):
            value = getattr(card, name)
            if value < 0:
                logger.warning("Negative %s (%s) clamped to 0", name, value)
                changes[name] = 0.0
        for name in ("reps", "lapses"):
            value = getattr(card, name)
            if value < 0:
                logger.warning("Negative %s (%s) clamped to 0", name, value)
                changes[name] = 0
        return replace(card, **changes) if changes else card

    @staticmethod
    def _elapsed_days(card: CardState, now: datetime) -> float:
        if card.last_review is None:
            return 0.0
        elapsed = (now - card.last_review).total_seconds() / 86400
        if elapsed < 0:
            logger.warning("Review time precedes last review by %.2f days", -elapsed)
            return 0.0
        return elapsed


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, unlike the built-in round()."""
    return math.floor(value + 0.5)


def _add_minutes(moment: datetime, minutes: float) -> datetime:
    return moment + timedelta(minutes=minutes)


def _add_days(moment: datetime, days: float) -> datetime:
    return moment + timedelta(days=days)
