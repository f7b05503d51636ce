from __future__ import annotations

from pydantic import BaseModel, Field


class GradeTotals(BaseModel):
    bad: int = 0
    good: int = 0
    excellent: int = 0


class ReviewStats(BaseModel):
    """Aggregate review statistics of one user.

    - by_day / grade_by_day are keyed by the UTC date (YYYY-MM-DD)
    - grade buckets follow the scheduler band: lapse=bad, good=good, easy=excellent
    """

    total_reviews: int = 0
    by_day: dict[str, int] = Field(default_factory=dict)
    grade_totals: GradeTotals = Field(default_factory=GradeTotals)
    grade_by_day: dict[str, GradeTotals] = Field(default_factory=dict)


class StatsResponse(BaseModel):
    stats: ReviewStats


class StatsResetRequest(BaseModel):
    user_id: str = Field(min_length=1)


class StatsResetResponse(BaseModel):
    ok: bool = True
    stats: ReviewStats
