"""Complaint, category and department models for EchoCity.

Rows mirror the ``complaints``, ``categories`` and ``departments``
tables of the hosted data service.  The canonical column names are the
later schema variant: ``latitude`` / ``longitude`` / ``address`` and a
list-valued ``image_urls``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from src.models.enums import ComplaintPriority, ComplaintStatus


class Department(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    description: str | None = None


class Category(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    icon: str = ""
    department_id: str | None = None


class Complaint(BaseModel):
    """A single citizen complaint row.

    ``department_id`` is always derived from the category at creation
    time; ``resolved_at`` is set only while ``status`` is ``resolved``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    description: str
    status: ComplaintStatus = ComplaintStatus.PENDING
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    category_id: str | None = None
    department_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str = ""
    image_urls: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None
    resolved_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _null_image_urls(cls, data: object) -> object:
        # The column is nullable; treat NULL as "no images".
        if isinstance(data, dict) and data.get("image_urls") is None:
            data = {**data, "image_urls": []}
        return data

    @property
    def is_resolved(self) -> bool:
        return self.status == ComplaintStatus.RESOLVED


class ComplaintDraft(BaseModel):
    """Citizen-supplied fields for a new complaint.

    Deliberately has no ``department_id``, ``status`` or ``user_id``:
    those are derived server-side.
    """

    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    category_id: str = Field(..., min_length=1)
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    latitude: float = Field(default=19.0760, ge=-90.0, le=90.0)
    longitude: float = Field(default=72.8777, ge=-180.0, le=180.0)
    address: str = Field(default="", max_length=500)


class ComplaintEdit(BaseModel):
    """Fields the owning citizen may change while a complaint is pending."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=10, max_length=5000)
    priority: ComplaintPriority | None = None
    address: str | None = Field(default=None, max_length=500)


class ComplaintView(BaseModel):
    """A complaint joined with its category, department and submitter names."""

    complaint: Complaint
    category_name: str | None = None
    department_name: str | None = None
    submitter_name: str = "Unknown User"
