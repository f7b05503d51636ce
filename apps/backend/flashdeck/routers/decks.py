from fastapi import APIRouter, HTTPException, Query

from ..logging import logger
from ..models.card import CardCreateRequest, CardResponse, CardUpdateRequest
from ..models.deck import (
    DeckCreateRequest,
    DeckExportResponse,
    DeckImportRequest,
    DeckResponse,
    DecksResponse,
    OkResponse,
)
from ..store import CardNotFound, DeckNotFound, store

router = APIRouter(tags=["decks"])


@router.get("/decks", response_model=DecksResponse, summary="List a user's decks with their cards")
async def list_decks(user_id: str = Query(min_length=1)) -> DecksResponse:
    return DecksResponse(decks=store.list_decks(user_id))


@router.post("/decks", response_model=DeckResponse, summary="Create an empty deck")
async def create_deck(req: DeckCreateRequest) -> DeckResponse:
    deck = store.create_deck(req.user_id, req.name)
    logger.info("deck_created", user_id=req.user_id, deck_id=deck.id)
    return DeckResponse(deck=deck)


@router.delete("/decks/{deck_id}", response_model=OkResponse, summary="Delete a deck and all its cards")
async def delete_deck(deck_id: str, user_id: str = Query(min_length=1)) -> OkResponse:
    try:
        store.delete_deck(user_id, deck_id)
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    return OkResponse()


@router.post("/decks/{deck_id}/cards", response_model=CardResponse, summary="Add a card (new cards are due immediately)")
async def add_card(deck_id: str, req: CardCreateRequest) -> CardResponse:
    try:
        card = store.add_card(
            req.user_id,
            deck_id,
            question=req.question,
            answer=req.answer,
            tags=req.tags,
            category=req.category,
        )
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    return CardResponse(card=card)


@router.put("/decks/{deck_id}/cards/{card_id}", response_model=CardResponse, summary="Edit card content")
async def update_card(deck_id: str, card_id: str, req: CardUpdateRequest) -> CardResponse:
    """Update question/answer/tags/category. Scheduling state is left as is."""
    try:
        card = store.update_card(
            req.user_id,
            deck_id,
            card_id,
            question=req.question,
            answer=req.answer,
            tags=req.tags,
            category=req.category,
        )
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    except CardNotFound:
        raise HTTPException(status_code=404, detail="card not found")
    return CardResponse(card=card)


@router.delete("/decks/{deck_id}/cards/{card_id}", response_model=OkResponse, summary="Delete a card")
async def delete_card(deck_id: str, card_id: str, user_id: str = Query(min_length=1)) -> OkResponse:
    try:
        store.delete_card(user_id, deck_id, card_id)
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    except CardNotFound:
        raise HTTPException(status_code=404, detail="card not found")
    return OkResponse()


@router.delete(
    "/decks/{deck_id}/categories/{category}",
    response_model=OkResponse,
    summary="Delete every card of a category",
)
async def delete_category(deck_id: str, category: str, user_id: str = Query(min_length=1)) -> OkResponse:
    try:
        deck = store.delete_category(user_id, deck_id, category)
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    return OkResponse(deck=deck)


@router.get("/decks/{deck_id}/export", response_model=DeckExportResponse, summary="Export deck content")
async def export_deck(deck_id: str, user_id: str = Query(min_length=1)) -> DeckExportResponse:
    """Export question/answer/tags/category only; scheduling state stays behind."""
    try:
        exported = store.export_deck(user_id, deck_id)
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    return DeckExportResponse(deck=exported)


@router.post("/import", response_model=OkResponse, summary="Import an exported deck as a new deck")
async def import_deck(req: DeckImportRequest) -> OkResponse:
    deck = store.import_deck(req.user_id, req.data)
    return OkResponse(deck=deck)
