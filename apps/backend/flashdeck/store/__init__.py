from __future__ import annotations

from ..config import settings
from ..srs import SchedulerPolicy
from .base import (
    CardNotFound,
    CardRepository,
    ConcurrentUpdateError,
    DeckNotFound,
    ReviewOutcome,
    StoreError,
)
from .sqlite_store import GRADE_BUCKETS, FlashcardSQLiteStore


def _create_store() -> FlashcardSQLiteStore:
    """Build the application-wide store wired to settings."""

    return FlashcardSQLiteStore(
        db_path=settings.flashcards_db_path,
        policy=SchedulerPolicy.from_settings(settings),
    )


store = _create_store()

__all__ = [
    "CardNotFound",
    "CardRepository",
    "ConcurrentUpdateError",
    "DeckNotFound",
    "FlashcardSQLiteStore",
    "GRADE_BUCKETS",
    "ReviewOutcome",
    "StoreError",
    "store",
]
