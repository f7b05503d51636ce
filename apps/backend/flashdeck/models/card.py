from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..srs import ScheduleState


class GradeLogEntry(BaseModel):
    """One submitted grade, in chronological order within a card."""

    reviewed_at: datetime
    grade: float


class Card(BaseModel):
    """A flashcard with its scheduling state.

    question/answer/tags/category are opaque to the scheduler.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    deck_id: str
    question: str
    answer: str
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    repetitions: int = 0
    interval_days: int = 0
    ease_factor: float = 2.5
    next_review_at: datetime
    review_count: int = 0
    last_reviewed_at: datetime | None = None
    grade_history: list[GradeLogEntry] = Field(default_factory=list)
    version: int = 0
    created_at: datetime

    def schedule_state(self) -> ScheduleState:
        """Return the scheduling subset as a scheduler value object."""

        return ScheduleState.from_mapping(self.model_dump())


class CardCreateRequest(BaseModel):
    user_id: str = Field(min_length=1)
    question: str = ""
    answer: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str | None = None


class CardUpdateRequest(BaseModel):
    """Content edit. Fields left as None keep their stored value."""

    user_id: str = Field(min_length=1)
    question: str | None = None
    answer: str | None = None
    tags: list[str] | None = None
    category: str | None = None


class CardResponse(BaseModel):
    card: Card
