"""
Operator endpoints of the live events tracker.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from footbot.api.dependencies.admin_auth import require_admin_api_key
from footbot.core.logging import get_logger
from footbot.domain.services.live_events_runtime import get_live_events_runtime

logger = get_logger(__name__)

router = APIRouter()


class PollSummaryResponse(BaseModel):
    """Fixtures seen at each stage of one cycle and events sent"""
    enabled: bool
    sent: int
    live_fixtures: int
    tracked_live_fixtures: int
    scoped_live_fixtures: int
    error: Optional[str] = None


@router.post(
    "/poll",
    response_model=PollSummaryResponse,
    summary="Run one poll cycle now",
    description=(
        "Runs a live events poll cycle on demand and returns its summary. "
        "A cycle already in progress is not repeated (sent=0)."
    ),
)
async def poll_live_events(
    _: None = Depends(require_admin_api_key),
) -> PollSummaryResponse:
    runtime = get_live_events_runtime()
    if not runtime.enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Live events tracker disabled: {runtime.disabled_reason}",
        )

    summary = await runtime.tracker.poll_once()
    logger.info("Manual live events poll", extra_data=summary.to_dict())
    return PollSummaryResponse(**summary.to_dict())
