"""Admin endpoints for EchoCity API v1.

Every route here requires a session whose admin role has been
confirmed.  Status changes go through the lifecycle controller, which
re-checks the actor on each transition.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from src.api.deps import get_complaints, get_lifecycle
from src.middleware.auth import require_admin
from src.models.complaint import Complaint, ComplaintView
from src.models.enums import ComplaintStatus
from src.models.profile import SessionContext
from src.services.analytics import compute_stats, daily_trend, export_csv, export_filename
from src.services.complaints import ComplaintService
from src.services.lifecycle import ComplaintLifecycleController, allowed_targets, is_terminal

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminComplaintList(BaseModel):
    complaints: list[ComplaintView]
    total: int


class StatusChangeRequest(BaseModel):
    status: str


class TransitionOptions(BaseModel):
    complaint_id: str
    current: ComplaintStatus
    allowed: list[ComplaintStatus]
    terminal: bool


class DailyCountResponse(BaseModel):
    day: date
    complaints: int
    resolved: int


class StatsResponse(BaseModel):
    total: int
    pending: int
    active: int
    resolved: int
    pending_verification: int
    reopened: int
    rejected: int
    resolution_rate: float
    trend: list[DailyCountResponse]


@router.get("/complaints", response_model=AdminComplaintList)
async def list_complaints(
    status: ComplaintStatus | None = Query(default=None),
    session: SessionContext = Depends(require_admin),
    complaints: ComplaintService = Depends(get_complaints),
) -> AdminComplaintList:
    """All complaints, newest first, optionally filtered by status."""
    rows = await complaints.list_all(session, status)
    return AdminComplaintList(complaints=await complaints.views(rows), total=len(rows))


@router.post("/complaints/{complaint_id}/status", response_model=Complaint)
async def change_status(
    complaint_id: str,
    body: StatusChangeRequest,
    session: SessionContext = Depends(require_admin),
    lifecycle: ComplaintLifecycleController = Depends(get_lifecycle),
) -> Complaint:
    """Move a complaint to a new status.

    Illegal moves answer 422 with the statuses reachable from the
    current one.  Repeating the current status is a no-op.
    """
    complaint = await lifecycle.transition(complaint_id, body.status, session)
    logger.info("api.admin.status_changed", complaint_id=complaint_id, status=str(complaint.status))
    return complaint


@router.get("/complaints/{complaint_id}/transitions", response_model=TransitionOptions)
async def list_transitions(
    complaint_id: str,
    session: SessionContext = Depends(require_admin),
    complaints: ComplaintService = Depends(get_complaints),
) -> TransitionOptions:
    """Statuses an admin may move this complaint to."""
    complaint = await complaints.get(complaint_id, session)
    return TransitionOptions(
        complaint_id=complaint.id,
        current=complaint.status,
        allowed=allowed_targets(complaint.status),
        terminal=is_terminal(complaint.status),
    )


@router.get("/stats", response_model=StatsResponse)
async def stats(
    days: int = Query(default=7, ge=1, le=90),
    session: SessionContext = Depends(require_admin),
    complaints: ComplaintService = Depends(get_complaints),
) -> StatsResponse:
    rows = await complaints.list_all(session)
    views = await complaints.views(rows)
    summary = compute_stats(views)
    trend = [DailyCountResponse(**asdict(d)) for d in daily_trend(views, days=days)]
    return StatsResponse(**asdict(summary), trend=trend)


@router.get("/export.csv")
async def export(
    status: ComplaintStatus | None = Query(default=None),
    session: SessionContext = Depends(require_admin),
    complaints: ComplaintService = Depends(get_complaints),
) -> Response:
    """Download complaints as CSV."""
    rows = await complaints.list_all(session, status)
    body = export_csv(await complaints.views(rows))
    filename = export_filename()
    logger.info("api.admin.exported", rows=len(rows), filename=filename)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
