from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..metrics import registry

router = APIRouter()


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Liveness/readiness probe for orchestrators and monitors."""
    return {"status": "ok"}


@router.get("/metrics")
def metrics() -> JSONResponse:
    """Return in-memory metrics snapshot.

    Per-path p95/errors/timeouts/count, plus reviews counted per grade band.
    """
    return JSONResponse(
        content={"paths": registry.snapshot(), "reviews": registry.review_snapshot()}
    )
