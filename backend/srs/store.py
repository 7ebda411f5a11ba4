"""In-process card state store for the study API.

Holds one CardState per (card, learner) pair plus the review logs the
scheduler produces. Nothing is written to disk: persistence belongs to
whatever store the host application plugs in.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime

from backend.srs.fsrs import CardState, ReviewLog

logger = logging.getLogger(__name__)

StateKey = tuple[str, str]  # (card_id, learner_id)


class StateStore:
    """Thread-safe mapping of (card, learner) to the latest CardState."""

    def __init__(self) -> None:
        self._states: dict[StateKey, CardState] = {}
        self._logs: defaultdict[StateKey, list[ReviewLog]] = defaultdict(list)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, key: StateKey) -> bool:
        return key in self._states

    def get(self, card_id: str, learner_id: str) -> CardState | None:
        """Return the stored state, or None if the learner never saw the card."""
        return self._states.get((card_id, learner_id))

    def put(self, card_id: str, learner_id: str, state: CardState) -> None:
        """Store the state returned by the scheduler."""
        with self._lock:
            self._states[(card_id, learner_id)] = state

    def append_log(self, card_id: str, learner_id: str, log: ReviewLog) -> None:
        """Append a review log entry; logs are never rewritten."""
        with self._lock:
            self._logs[(card_id, learner_id)].append(log)

    def logs(self, card_id: str, learner_id: str) -> list[ReviewLog]:
        """Return the review logs for a card, oldest first."""
        return list(self._logs.get((card_id, learner_id), []))

    def due(self, learner_id: str, now: datetime) -> list[tuple[str, CardState]]:
        """Return (card_id, state) pairs due at *now*, most overdue first."""
        with self._lock:
            due = [
                (card_id, state)
                for (card_id, owner), state in self._states.items()
                if owner == learner_id and state.due <= now
            ]
        due.sort(key=lambda item: item[1].due)
        logger.debug("Learner %s has %d cards due", learner_id, len(due))
        return due

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
            self._logs.clear()
