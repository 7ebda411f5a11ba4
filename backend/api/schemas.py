"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, Field

from backend.srs.fsrs import CardState, ReviewLog, ScheduleOption, State
from backend.srs.intervals import format_interval

# --- Card state ---


class CardStateModel(BaseModel):
    """Wire form of a card's scheduling state."""

    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: float
    reps: int
    lapses: int
    state: State
    due: datetime
    last_review: datetime | None = None

    @classmethod
    def from_state(cls, state: CardState) -> "CardStateModel":
        return cls(
            stability=state.stability,
            difficulty=state.difficulty,
            elapsed_days=state.elapsed_days,
            scheduled_days=state.scheduled_days,
            reps=state.reps,
            lapses=state.lapses,
            state=state.state,
            due=state.due,
            last_review=state.last_review,
        )


class CardStateResponse(BaseModel):
    """A card's stored state for one learner."""

    card_id: str
    learner_id: str
    card_state: CardStateModel


class CreateCardRequest(BaseModel):
    """Request to start tracking a card for a learner."""

    card_id: str = Field(min_length=1)
    learner_id: str = Field(min_length=1)


# --- Preview ---


class ScheduleOptionResponse(BaseModel):
    """Outcome of one rating in a preview."""

    due: datetime
    scheduled_days: float
    state: State
    interval: str  # Human-readable label, e.g. "< 1 min", "4 days"

    @classmethod
    def from_option(cls, option: ScheduleOption) -> "ScheduleOptionResponse":
        return cls(
            due=option.due,
            scheduled_days=option.scheduled_days,
            state=option.state,
            interval=format_interval(option.scheduled_days),
        )


class PreviewResponse(BaseModel):
    """Preview of all four ratings for a card."""

    card_id: str
    learner_id: str
    state: State
    again: ScheduleOptionResponse
    hard: ScheduleOptionResponse
    good: ScheduleOptionResponse
    easy: ScheduleOptionResponse


# --- Review ---


class ReviewRequest(BaseModel):
    """Request to submit a rating for a card."""

    card_id: str = Field(min_length=1)
    learner_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=4)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    review_time_ms: int = Field(default=0, ge=0)


class ReviewLogResponse(BaseModel):
    """A single review log entry."""

    rating: int
    prior_state: State
    elapsed_days: float
    scheduled_days: float
    review_time_ms: int
    reviewed_at: datetime

    @classmethod
    def from_log(cls, log: ReviewLog) -> "ReviewLogResponse":
        return cls(
            rating=int(log.rating),
            prior_state=log.prior_state,
            elapsed_days=log.elapsed_days,
            scheduled_days=log.scheduled_days,
            review_time_ms=log.review_time_ms,
            reviewed_at=log.reviewed_at,
        )


class ReviewResponse(BaseModel):
    """Response after a review with the committed state and scheduling info."""

    card_state: CardStateModel
    next_due: datetime
    interval: str
    retrievability: float
    log: ReviewLogResponse


# --- Queue ---


class DueCard(BaseModel):
    card_id: str
    state: State
    due: datetime


class DueCardsResponse(BaseModel):
    """Cards whose due time has passed for a learner."""

    learner_id: str
    count: int
    cards: list[DueCard]
