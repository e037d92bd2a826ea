from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..schemas.activity import ActivityEventSchema, PointsResponse
from ..services.activity import get_recent_activity, get_total_points
from ..session_auth import require_user_id

router = APIRouter(prefix="/api/activity")


@router.get("/points", response_model=PointsResponse)
async def get_points(
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(require_user_id),
) -> PointsResponse:
    total = await get_total_points(user_id)
    recent = await get_recent_activity(user_id, limit)
    return PointsResponse(
        total=total,
        recent=[ActivityEventSchema.model_validate(event) for event in recent],
    )
