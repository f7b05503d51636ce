from fastapi import APIRouter, HTTPException, Query

from ..config import settings
from ..logging import logger
from ..metrics import registry
from ..models.review import DueCardsResponse, ReviewRequest, ReviewResponse
from ..srs import SchedulerError
from ..store import CardNotFound, ConcurrentUpdateError, DeckNotFound, store
from ..store.common import utcnow

router = APIRouter(tags=["review"])


@router.post("/review", response_model=ReviewResponse, summary="Grade a card and schedule its next review")
async def submit_review(req: ReviewRequest) -> ReviewResponse:
    """Grade one card and return it with the deck's new reviewed count.

    The card update, the deck counter and the daily statistics are written in
    one transaction; a rejected grade leaves everything untouched.
    """
    try:
        outcome = store.submit_review(req.user_id, req.deck_id, req.card_id, req.grade)
    except SchedulerError as exc:
        logger.info(
            "review_rejected",
            card_id=req.card_id,
            deck_id=req.deck_id,
            error_type=exc.__class__.__name__,
            error_message=str(exc),
        )
        raise HTTPException(status_code=400, detail=str(exc))
    except CardNotFound:
        raise HTTPException(status_code=404, detail="card not found")
    except ConcurrentUpdateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    registry.record_review(outcome.band.value)
    return ReviewResponse(card=outcome.card, reviewed_count=outcome.reviewed_count)


@router.get("/review/due", response_model=DueCardsResponse, summary="Cards due for review, oldest first")
async def due_cards(
    user_id: str = Query(min_length=1),
    deck_id: str | None = None,
    limit: int | None = Query(default=None, ge=1),
) -> DueCardsResponse:
    now = utcnow()
    effective_limit = min(limit or settings.review_due_limit, settings.review_due_limit)
    try:
        items = store.list_due_cards(user_id, deck_id=deck_id, now=now, limit=effective_limit)
    except DeckNotFound:
        raise HTTPException(status_code=404, detail="deck not found")
    return DueCardsResponse(now=now, items=items)
