from fastapi import APIRouter

from ..config import settings
from ..store import store


router = APIRouter()


@router.get("/config")
def get_runtime_config() -> dict[str, object]:
    """Expose the scheduler policy in effect so clients can label grade buttons."""
    return {
        "environment": settings.environment,
        "review_due_limit": settings.review_due_limit,
        "scheduler": store.policy.as_dict(),
    }
