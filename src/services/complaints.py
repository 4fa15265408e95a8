"""Complaint creation and retrieval.

Status changes do not happen here -- they go through
:class:`~src.services.lifecycle.ComplaintLifecycleController`.  This
module owns the submission flow:

1. resolve the chosen category and derive its department;
2. reject a second complaint with the same title from the same user;
3. upload the evidence image, continuing without it if the upload fails;
4. once the upload has produced a public URL, optionally ask the
   analysis webhook for a label and switch to the category it names;
5. insert the row as ``pending``.
"""

from __future__ import annotations

import asyncio
import re
import time
import weakref
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.models.complaint import Complaint, ComplaintView
from src.models.enums import ComplaintStatus
from src.services.errors import (
    AuthorizationError,
    DuplicateComplaintError,
    NotFoundError,
    RemoteServiceError,
    StaleRecordError,
    ValidationError,
)

if TYPE_CHECKING:
    from src.models.complaint import Category, ComplaintDraft, ComplaintEdit
    from src.models.profile import SessionContext
    from src.services.advisory import AdvisoryService
    from src.services.directory import CategoryDirectory
    from src.services.store import FileStorage, RecordStore

logger = structlog.get_logger(__name__)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class ImageUpload:
    filename: str
    data: bytes
    content_type: str = "image/jpeg"


class ComplaintService:
    """Submission, listing and owner edits of complaints."""

    __slots__ = ("_advisory", "_directory", "_locks", "_storage", "_store")

    def __init__(
        self,
        store: RecordStore,
        directory: CategoryDirectory,
        *,
        storage: FileStorage | None = None,
        advisory: AdvisoryService | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._storage = storage
        self._advisory = advisory
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = weakref.WeakValueDictionary()

    def _submission_lock(self, user_id: str, title: str) -> asyncio.Lock:
        key = (user_id, title)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _ensure_unique_title(self, user_id: str, title: str, *, exclude_id: str | None = None) -> None:
        existing = await self._store.find_complaints(user_id=user_id, title=title)
        if any(c.id != exclude_id for c in existing):
            logger.info("complaint.duplicate_rejected", user_id=user_id, title=title)
            raise DuplicateComplaintError()

    async def _upload(self, user_id: str, image: ImageUpload) -> str | None:
        if self._storage is None:
            return None
        safe_name = _UNSAFE_FILENAME.sub("_", image.filename).strip("_") or "image"
        path = f"{user_id}/{int(time.time() * 1000)}_{safe_name}"
        try:
            return await self._storage.upload(path, image.data, image.content_type)
        except RemoteServiceError:
            logger.warning("complaint.image_upload_failed", user_id=user_id, path=path)
            return None

    async def _category_from_webhook(self, image_url: str) -> Category | None:
        if self._advisory is None:
            return None
        result = await self._advisory.analyze_url(image_url)
        if result is None:
            return None
        label = result.label.strip().lower()
        for category in await self._directory.categories():
            if category.name.strip().lower() == label:
                return category
        return None

    async def create_complaint(
        self,
        session: SessionContext,
        draft: ComplaintDraft,
        image: ImageUpload | None = None,
    ) -> Complaint:
        title = draft.title.strip()
        description = draft.description.strip()
        if not title or not description:
            raise ValidationError("Title and description are required.")

        category = await self._directory.get_category(draft.category_id)
        if category is None:
            raise ValidationError("Please select a valid category.")

        log = logger.bind(user_id=session.user_id, category=category.name)

        async with self._submission_lock(session.user_id, title):
            await self._ensure_unique_title(session.user_id, title)

            image_urls: list[str] = []
            if image is not None:
                url = await self._upload(session.user_id, image)
                if url is not None:
                    image_urls.append(url)
                    suggested = await self._category_from_webhook(url)
                    if suggested is not None and suggested.id != category.id:
                        log.info("complaint.category_from_webhook", suggested=suggested.name)
                        category = suggested

            complaint = Complaint(
                user_id=session.user_id,
                title=title,
                description=description,
                status=ComplaintStatus.PENDING,
                priority=draft.priority,
                category_id=category.id,
                department_id=category.department_id,
                latitude=draft.latitude,
                longitude=draft.longitude,
                address=draft.address.strip(),
                image_urls=image_urls,
            )
            created = await self._store.insert_complaint(complaint)

        log.info(
            "complaint.created",
            complaint_id=created.id,
            department_id=created.department_id,
            images=len(created.image_urls),
        )
        return created

    async def get(self, complaint_id: str, session: SessionContext) -> Complaint:
        complaint = await self._store.get_complaint(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint '{complaint_id}' not found.")
        if not session.is_admin and complaint.user_id != session.user_id:
            raise AuthorizationError("You can only view your own complaints.")
        return complaint

    async def list_for_user(self, session: SessionContext) -> list[Complaint]:
        return await self._store.find_complaints(user_id=session.user_id)

    async def list_all(
        self,
        session: SessionContext,
        status: ComplaintStatus | None = None,
    ) -> list[Complaint]:
        if not session.is_admin:
            raise AuthorizationError()
        return await self._store.find_complaints(status=status)

    async def community_feed(self, limit: int = 100) -> list[Complaint]:
        """Latest complaints from everyone, for the public community page."""
        return await self._store.find_complaints(limit=limit)

    async def update_own(
        self,
        complaint_id: str,
        edit: ComplaintEdit,
        session: SessionContext,
    ) -> Complaint:
        """Let the submitter edit their complaint until an admin acts on it."""
        complaint = await self._store.get_complaint(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint '{complaint_id}' not found.")
        if complaint.user_id != session.user_id:
            raise AuthorizationError("You can only edit your own complaints.")
        if complaint.status != ComplaintStatus.PENDING:
            raise ValidationError("Only pending complaints can be edited.")

        fields = edit.model_dump(exclude_none=True)
        for name in ("title", "description"):
            if name in fields:
                fields[name] = fields[name].strip()
                if not fields[name]:
                    raise ValidationError(f"The {name} cannot be blank.")
        if "address" in fields:
            fields["address"] = fields["address"].strip()
        if "title" in fields:
            await self._ensure_unique_title(session.user_id, fields["title"], exclude_id=complaint_id)
        if not fields:
            return complaint

        fields["updated_at"] = datetime.now(UTC)
        try:
            updated = await self._store.update_complaint(
                complaint_id,
                fields,
                expected_status=ComplaintStatus.PENDING,
            )
        except StaleRecordError:
            raise ValidationError("Only pending complaints can be edited.") from None
        logger.info("complaint.edited", complaint_id=complaint_id, fields=sorted(fields))
        return updated

    async def views(self, complaints: list[Complaint]) -> list[ComplaintView]:
        """Join complaints with category, department and submitter names."""
        category_names, department_names = await self._directory.names()
        user_ids = sorted({c.user_id for c in complaints})
        profiles = {p.id: p.full_name for p in await self._store.get_profiles(user_ids)}
        return [
            ComplaintView(
                complaint=c,
                category_name=category_names.get(c.category_id or ""),
                department_name=department_names.get(c.department_id or ""),
                submitter_name=profiles.get(c.user_id) or "Unknown User",
            )
            for c in complaints
        ]
