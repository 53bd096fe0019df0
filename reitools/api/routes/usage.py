"""Source quota and cache status routes."""

from fastapi import APIRouter, Depends

from reitools.api.deps import get_store
from reitools.api.schemas import UsageResponse
from reitools.models.usage import QuotaWindow

router = APIRouter(prefix="/api/v1", tags=["usage"])


@router.get("/usage", response_model=UsageResponse)
def usage(store=Depends(get_store)):
    """Per-source quota usage and the last source that returned data."""
    last = store.last_success()
    return UsageResponse(
        sources=store.usage_report(),
        last_success_source=last.source if last else None,
        last_success_at=last.at if last else None,
    )


@router.post("/usage/reset", response_model=UsageResponse)
def reset_usage(window: QuotaWindow, store=Depends(get_store)):
    """Clear counters for every source in a quota window."""
    store.reset_usage(window)
    return usage(store)
