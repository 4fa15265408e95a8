"""Public community feed for EchoCity API v1.

No session required: anyone can see what has been reported recently
and how the city is keeping up.
"""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.api.deps import get_complaints
from src.models.complaint import ComplaintView
from src.services.analytics import community_stats
from src.services.complaints import ComplaintService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["community"])


class CommunityStatsResponse(BaseModel):
    total: int
    today: int
    this_week: int
    resolved: int
    pending: int
    top_category: str | None = None


class CommunityFeed(BaseModel):
    complaints: list[ComplaintView]
    stats: CommunityStatsResponse


@router.get("/community", response_model=CommunityFeed)
async def community_feed(
    limit: int = Query(default=100, ge=1, le=100),
    complaints: ComplaintService = Depends(get_complaints),
) -> CommunityFeed:
    """Latest complaints from everyone, newest first, with summary stats."""
    views = await complaints.views(await complaints.community_feed(limit))
    stats = community_stats(views)
    return CommunityFeed(complaints=views, stats=CommunityStatsResponse(**asdict(stats)))
