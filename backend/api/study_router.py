"""API routes for studying cards: previews, reviews and due lists."""

import logging
from datetime import datetime
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from backend.api.schemas import (
    CardStateModel,
    CardStateResponse,
    CreateCardRequest,
    DueCard,
    DueCardsResponse,
    PreviewResponse,
    ReviewLogResponse,
    ReviewRequest,
    ReviewResponse,
    ScheduleOptionResponse,
)
from backend.config import utcnow
from backend.srs.fsrs import FSRS
from backend.srs.intervals import format_interval
from backend.srs.store import StateStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study", tags=["study"])

# In-memory state store (the host application owns real persistence)
_store = StateStore()


@lru_cache
def get_scheduler() -> FSRS:
    """Return the scheduler configured from settings."""
    return FSRS.from_settings()


def get_store() -> StateStore:
    return _store


def get_now() -> datetime:
    """Review-time source; overridden in tests for deterministic clocks."""
    return utcnow()


@router.post("/cards", response_model=CardStateResponse, status_code=201)
async def create_card(
    request: CreateCardRequest,
    scheduler: FSRS = Depends(get_scheduler),
    store: StateStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> CardStateResponse:
    """Start tracking a card for a learner."""
    if store.get(request.card_id, request.learner_id) is not None:
        raise HTTPException(status_code=409, detail="Card already tracked for learner")

    state = scheduler.create_new_card(now)
    store.put(request.card_id, request.learner_id, state)
    logger.info("Tracking card %s for learner %s", request.card_id, request.learner_id)

    return CardStateResponse(
        card_id=request.card_id,
        learner_id=request.learner_id,
        card_state=CardStateModel.from_state(state),
    )


@router.get("/cards/{card_id}", response_model=CardStateResponse)
async def get_card(
    card_id: str,
    learner_id: str,
    store: StateStore = Depends(get_store),
) -> CardStateResponse:
    """Get the stored state of a card."""
    state = store.get(card_id, learner_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Card state not found")

    return CardStateResponse(
        card_id=card_id,
        learner_id=learner_id,
        card_state=CardStateModel.from_state(state),
    )


@router.get("/cards/{card_id}/preview", response_model=PreviewResponse)
async def preview_card(
    card_id: str,
    learner_id: str,
    scheduler: FSRS = Depends(get_scheduler),
    store: StateStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> PreviewResponse:
    """Preview the outcome of each rating. Unknown cards preview as new."""
    state = store.get(card_id, learner_id) or scheduler.create_new_card(now)
    result = scheduler.schedule(state, now)

    return PreviewResponse(
        card_id=card_id,
        learner_id=learner_id,
        state=state.state,
        again=ScheduleOptionResponse.from_option(result.again),
        hard=ScheduleOptionResponse.from_option(result.hard),
        good=ScheduleOptionResponse.from_option(result.good),
        easy=ScheduleOptionResponse.from_option(result.easy),
    )


@router.post("/review", response_model=ReviewResponse)
async def review_card(
    request: ReviewRequest,
    scheduler: FSRS = Depends(get_scheduler),
    store: StateStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ReviewResponse:
    """Submit a rating, commit the new state and append a review log."""
    state = store.get(request.card_id, request.learner_id)
    if state is None:
        # First time this learner sees the card
        state = scheduler.create_new_card(now)

    result = scheduler.review_with_log(
        state,
        request.rating,
        now,
        review_time_ms=request.review_time_ms,
    )
    store.put(request.card_id, request.learner_id, result.new_state)
    store.append_log(request.card_id, request.learner_id, result.log)

    logger.info(
        "Card %s (learner %s) rated %d: %s -> %s, next due %s",
        request.card_id,
        request.learner_id,
        request.rating,
        state.state.value,
        result.new_state.state.value,
        result.new_state.due.isoformat(),
    )

    return ReviewResponse(
        card_state=CardStateModel.from_state(result.new_state),
        next_due=result.new_state.due,
        interval=format_interval(result.interval_days),
        retrievability=result.retrievability,
        log=ReviewLogResponse.from_log(result.log),
    )


@router.get("/due", response_model=DueCardsResponse)
async def due_cards(
    learner_id: str,
    limit: int = 20,
    store: StateStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> DueCardsResponse:
    """List cards due for a learner, most overdue first."""
    due = store.due(learner_id, now)[: max(0, limit)]
    cards = [DueCard(card_id=card_id, state=state.state, due=state.due) for card_id, state in due]
    return DueCardsResponse(learner_id=learner_id, count=len(cards), cards=cards)


@router.get("/logs/{card_id}", response_model=list[ReviewLogResponse])
async def review_logs(
    card_id: str,
    learner_id: str,
    store: StateStore = Depends(get_store),
) -> list[ReviewLogResponse]:
    """Get the review history of a card, oldest first."""
    return [ReviewLogResponse.from_log(log) for log in store.logs(card_id, learner_id)]
