from fastapi import APIRouter, Query

from ..models.stats import StatsResetRequest, StatsResetResponse, StatsResponse
from ..store import store

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsResponse, summary="Aggregate review statistics")
async def get_stats(user_id: str = Query(min_length=1)) -> StatsResponse:
    """Totals, reviews per UTC day and grade buckets (bad/good/excellent)."""
    return StatsResponse(stats=store.get_stats(user_id))


@router.post("/stats/reset", response_model=StatsResetResponse, summary="Reset statistics and deck counters")
async def reset_stats(req: StatsResetRequest) -> StatsResetResponse:
    return StatsResetResponse(stats=store.reset_stats(req.user_id))
