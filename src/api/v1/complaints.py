"""Citizen complaint endpoints for EchoCity API v1.

Submitting, listing, editing and disputing one's own complaints, plus
the public category and department directory used by the complaint
form.
"""

from __future__ import annotations

import pydantic
import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from src.api.deps import get_complaints, get_directory, get_lifecycle
from src.middleware.auth import require_session
from src.models.complaint import (
    Category,
    Complaint,
    ComplaintDraft,
    ComplaintEdit,
    ComplaintView,
    Department,
)
from src.models.enums import ComplaintPriority
from src.models.profile import SessionContext
from src.services.complaints import ComplaintService, ImageUpload
from src.services.directory import CategoryDirectory
from src.services.errors import ValidationError
from src.services.lifecycle import ComplaintLifecycleController

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["complaints"])

_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class ComplaintListResponse(BaseModel):
    complaints: list[ComplaintView]
    total: int


def _form_error_message(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "form"
    return f"Invalid {field}: {first['msg']}."


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@router.get("/categories", response_model=list[Category])
async def list_categories(directory: CategoryDirectory = Depends(get_directory)) -> list[Category]:
    return await directory.categories()


@router.get("/departments", response_model=list[Department])
async def list_departments(directory: CategoryDirectory = Depends(get_directory)) -> list[Department]:
    return await directory.departments()


# ---------------------------------------------------------------------------
# Complaints
# ---------------------------------------------------------------------------


@router.post("/complaints", response_model=Complaint, status_code=201)
async def create_complaint(
    body: ComplaintDraft,
    session: SessionContext = Depends(require_session),
    complaints: ComplaintService = Depends(get_complaints),
) -> Complaint:
    """Submit a complaint without an image."""
    return await complaints.create_complaint(session, body)


@router.post("/complaints/upload", response_model=Complaint, status_code=201)
async def create_complaint_with_image(
    title: str = Form(...),
    description: str = Form(...),
    category_id: str = Form(...),
    priority: ComplaintPriority = Form(ComplaintPriority.MEDIUM),
    latitude: float = Form(19.0760),
    longitude: float = Form(72.8777),
    address: str = Form(""),
    image: UploadFile | None = File(default=None),
    session: SessionContext = Depends(require_session),
    complaints: ComplaintService = Depends(get_complaints),
) -> Complaint:
    """Submit a complaint with an optional evidence photo (multipart form)."""
    try:
        draft = ComplaintDraft(
            title=title,
            description=description,
            category_id=category_id,
            priority=priority,
            latitude=latitude,
            longitude=longitude,
            address=address,
        )
    except pydantic.ValidationError as exc:
        raise ValidationError(_form_error_message(exc)) from None

    upload: ImageUpload | None = None
    if image is not None and image.filename:
        data = await image.read()
        if len(data) > _MAX_IMAGE_BYTES:
            raise ValidationError("Images must be 10 MB or smaller.")
        if data:
            upload = ImageUpload(
                filename=image.filename,
                data=data,
                content_type=image.content_type or "image/jpeg",
            )

    return await complaints.create_complaint(session, draft, upload)


@router.get("/complaints/mine", response_model=ComplaintListResponse)
async def my_complaints(
    session: SessionContext = Depends(require_session),
    complaints: ComplaintService = Depends(get_complaints),
) -> ComplaintListResponse:
    rows = await complaints.list_for_user(session)
    return ComplaintListResponse(complaints=await complaints.views(rows), total=len(rows))


@router.get("/complaints/{complaint_id}", response_model=ComplaintView)
async def get_complaint(
    complaint_id: str,
    session: SessionContext = Depends(require_session),
    complaints: ComplaintService = Depends(get_complaints),
) -> ComplaintView:
    complaint = await complaints.get(complaint_id, session)
    (view,) = await complaints.views([complaint])
    return view


@router.patch("/complaints/{complaint_id}", response_model=Complaint)
async def edit_complaint(
    complaint_id: str,
    body: ComplaintEdit,
    session: SessionContext = Depends(require_session),
    complaints: ComplaintService = Depends(get_complaints),
) -> Complaint:
    """Edit one's own complaint while it is still pending."""
    return await complaints.update_own(complaint_id, body, session)


@router.post("/complaints/{complaint_id}/dispute", response_model=Complaint)
async def dispute_resolution(
    complaint_id: str,
    session: SessionContext = Depends(require_session),
    lifecycle: ComplaintLifecycleController = Depends(get_lifecycle),
) -> Complaint:
    """Tell the admins a resolved complaint is not actually fixed.

    Moves the complaint to ``pending-verification``; an admin then
    confirms the resolution or reopens it.
    """
    complaint = await lifecycle.dispute(complaint_id, session)
    logger.info("api.complaints.disputed", complaint_id=complaint_id)
    return complaint
