from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .card import Card


class ReviewRequest(BaseModel):
    """Grade submission for one card.

    grade is kept untyped here so that booleans, null and free text reach the
    scheduler, which coerces numeric input and rejects everything else.
    """

    user_id: str = Field(min_length=1)
    deck_id: str = Field(min_length=1)
    card_id: str = Field(min_length=1)
    grade: Any


class ReviewResponse(BaseModel):
    card: Card
    reviewed_count: int


class DueCardsResponse(BaseModel):
    now: datetime
    items: list[Card]
