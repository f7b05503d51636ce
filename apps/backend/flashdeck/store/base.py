"""Repository port for card scheduling state.

The scheduler stays pure; persistence adapters implement this contract and
own the read-modify-write cycle of a review.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ..models.card import Card
from ..srs import GradeBand, ScheduleState


class StoreError(Exception):
    """Base class for persistence errors."""


class DeckNotFound(StoreError, LookupError):
    def __init__(self, deck_id: str) -> None:
        super().__init__(f"deck not found: {deck_id}")
        self.deck_id = deck_id


class CardNotFound(StoreError, LookupError):
    def __init__(self, card_id: str) -> None:
        super().__init__(f"card not found: {card_id}")
        self.card_id = card_id


class ConcurrentUpdateError(StoreError):
    """The stored card changed since the caller read it."""

    def __init__(self, card_id: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"card {card_id} is at version {actual_version}, expected {expected_version}"
        )
        self.card_id = card_id
        self.expected_version = expected_version
        self.actual_version = actual_version


@dataclass(frozen=True)
class ReviewOutcome:
    card: Card
    reviewed_count: int
    band: GradeBand


class CardRepository(ABC):
    """Port for loading and storing card scheduling state."""

    @abstractmethod
    def get(self, card_id: str) -> Card | None:
        """Return the card, or None when it does not exist."""

    @abstractmethod
    def put(
        self,
        card_id: str,
        state: ScheduleState,
        *,
        expected_version: int | None = None,
    ) -> Card:
        """Replace the scheduling state of a card.

        When expected_version is given the write only happens if the stored
        version still matches (compare-and-swap); otherwise
        ConcurrentUpdateError is raised.
        """

    @abstractmethod
    def update_with_scheduler(
        self,
        card_id: str,
        grade: object,
        *,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """Atomically load, schedule and persist one review of a card."""
