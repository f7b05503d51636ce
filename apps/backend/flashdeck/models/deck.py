from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .card import Card


class Deck(BaseModel):
    id: str
    user_id: str
    name: str
    reviewed_count: int = 0
    created_at: datetime
    cards: list[Card] = Field(default_factory=list)


class DeckCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)


class DeckResponse(BaseModel):
    deck: Deck


class DecksResponse(BaseModel):
    decks: list[Deck]


class ExportedCard(BaseModel):
    """Portable card content; scheduling state is never exported."""

    question: str = ""
    answer: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str | None = None


class DeckExport(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    cards: dict[str, ExportedCard]


class DeckExportResponse(BaseModel):
    deck: DeckExport


class DeckImportRequest(BaseModel):
    user_id: str = Field(min_length=1)
    data: DeckExport


class OkResponse(BaseModel):
    ok: bool = True
    deck: Deck | None = None
