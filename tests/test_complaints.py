"""Tests for the complaint submission flow and owner edits."""

from __future__ import annotations

import asyncio

import pytest

from src.models.advisory import AnalyzeResult
from src.models.complaint import ComplaintDraft, ComplaintEdit
from src.models.enums import ComplaintPriority, ComplaintStatus
from src.services.complaints import ComplaintService, ImageUpload
from src.services.errors import (
    AuthorizationError,
    DuplicateComplaintError,
    NotFoundError,
    RemoteServiceError,
    ValidationError,
)

ROADS_ID = "dept-roads"
LIGHTS_ID = "dept-lights"
POTHOLES_ID = "cat-potholes"
STREETLIGHT_ID = "cat-streetlight"


class FailingStorage:
    async def upload(self, path, data, content_type):
        raise RemoteServiceError("storage down")


class ApprovedMidEditStore:
    """Store where an admin approves the complaint just before the edit lands."""

    def __init__(self, inner) -> None:
        self._inner = inner

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def update_complaint(self, complaint_id, fields, **kwargs):
        await self._inner.update_complaint(complaint_id, {"status": ComplaintStatus.APPROVED})
        return await self._inner.update_complaint(complaint_id, fields, **kwargs)


class MockAdvisory:
    """Mock advisory service that labels every image the same way."""

    def __init__(self, label: str | None) -> None:
        self.label = label
        self.urls: list[str] = []

    async def analyze_url(self, image_url):
        self.urls.append(image_url)
        if self.label is None:
            return None
        return AnalyzeResult(label=self.label, confidence=0.85, notes="stub")


def draft(title: str = "Broken streetlight", category_id: str = STREETLIGHT_ID, **kwargs) -> ComplaintDraft:
    return ComplaintDraft(
        title=title,
        description="The streetlight outside house 42 has been off for a week.",
        category_id=category_id,
        **kwargs,
    )


@pytest.fixture
def service(store, directory) -> ComplaintService:
    return ComplaintService(store, directory, storage=store)


# -----------------------------------------------------------------------
# Creation
# -----------------------------------------------------------------------


class TestCreateComplaint:
    async def test_created_pending_with_derived_department(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft(priority=ComplaintPriority.HIGH))
        assert complaint.status == ComplaintStatus.PENDING
        assert complaint.user_id == "citizen-1"
        assert complaint.category_id == STREETLIGHT_ID
        assert complaint.department_id == LIGHTS_ID
        assert complaint.priority == ComplaintPriority.HIGH
        assert complaint.image_urls == []

    async def test_fields_are_trimmed(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft(title="  Broken streetlight  ", address=" Lane 4 "))
        assert complaint.title == "Broken streetlight"
        assert complaint.address == "Lane 4"

    async def test_unknown_category(self, service, citizen) -> None:
        with pytest.raises(ValidationError, match="valid category"):
            await service.create_complaint(citizen, draft(category_id="no-such-category"))

    async def test_duplicate_title_rejected(self, service, store, citizen) -> None:
        await service.create_complaint(citizen, draft())
        with pytest.raises(DuplicateComplaintError):
            await service.create_complaint(citizen, draft())
        assert len(await store.find_complaints(user_id="citizen-1")) == 1

    async def test_duplicate_is_a_validation_error(self) -> None:
        assert issubclass(DuplicateComplaintError, ValidationError)

    async def test_same_title_for_another_user_is_fine(self, service, citizen, other_citizen) -> None:
        await service.create_complaint(citizen, draft())
        other = await service.create_complaint(other_citizen, draft())
        assert other.user_id == "citizen-2"

    async def test_concurrent_duplicates_insert_once(self, service, store, citizen) -> None:
        results = await asyncio.gather(
            service.create_complaint(citizen, draft()),
            service.create_complaint(citizen, draft()),
            return_exceptions=True,
        )
        assert sum(isinstance(r, DuplicateComplaintError) for r in results) == 1
        assert len(await store.find_complaints(user_id="citizen-1")) == 1


class TestImages:
    async def test_image_is_uploaded(self, service, store, citizen) -> None:
        image = ImageUpload(filename="street light.jpg", data=b"jpeg-bytes")
        complaint = await service.create_complaint(citizen, draft(), image)
        assert len(complaint.image_urls) == 1
        url = complaint.image_urls[0]
        assert url.startswith("memory://complaint-images/citizen-1/")
        assert url.endswith("_street_light.jpg")
        assert store.file(url.removeprefix("memory://complaint-images/")) == b"jpeg-bytes"

    async def test_upload_failure_continues_without_image(self, store, directory, citizen) -> None:
        service = ComplaintService(store, directory, storage=FailingStorage())
        complaint = await service.create_complaint(citizen, draft(), ImageUpload("a.jpg", b"data"))
        assert complaint.image_urls == []
        assert await store.get_complaint(complaint.id) is not None

    async def test_webhook_label_switches_category(self, store, directory, citizen) -> None:
        advisory = MockAdvisory("potholes")
        service = ComplaintService(store, directory, storage=store, advisory=advisory)
        complaint = await service.create_complaint(citizen, draft(), ImageUpload("a.jpg", b"data"))
        assert advisory.urls == complaint.image_urls
        assert complaint.category_id == POTHOLES_ID
        assert complaint.department_id == ROADS_ID

    async def test_webhook_label_must_match_exactly(self, store, directory, citizen) -> None:
        service = ComplaintService(store, directory, storage=store, advisory=MockAdvisory("pothole"))
        complaint = await service.create_complaint(citizen, draft(), ImageUpload("a.jpg", b"data"))
        assert complaint.category_id == STREETLIGHT_ID

    async def test_webhook_not_called_without_upload(self, directory, store, citizen) -> None:
        advisory = MockAdvisory("potholes")
        service = ComplaintService(store, directory, storage=FailingStorage(), advisory=advisory)
        await service.create_complaint(citizen, draft(), ImageUpload("a.jpg", b"data"))
        assert advisory.urls == []


# -----------------------------------------------------------------------
# Reading and editing
# -----------------------------------------------------------------------


class TestAccess:
    async def test_owner_and_admin_can_read(self, service, citizen, admin, other_citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        assert (await service.get(complaint.id, citizen)).id == complaint.id
        assert (await service.get(complaint.id, admin)).id == complaint.id
        with pytest.raises(AuthorizationError):
            await service.get(complaint.id, other_citizen)

    async def test_missing(self, service, admin) -> None:
        with pytest.raises(NotFoundError):
            await service.get("missing", admin)

    async def test_list_all_requires_admin(self, service, citizen, admin) -> None:
        await service.create_complaint(citizen, draft())
        with pytest.raises(AuthorizationError):
            await service.list_all(citizen)
        assert len(await service.list_all(admin)) == 1
        assert await service.list_all(admin, ComplaintStatus.RESOLVED) == []

    async def test_views_join_names(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        (view,) = await service.views([complaint])
        assert view.category_name == "Street Lighting"
        assert view.department_name == "Electricity"
        assert view.submitter_name == "Asha Rao"

    async def test_views_unknown_submitter(self, service, store, make_complaint) -> None:
        complaint = await make_complaint(user_id="ghost")
        (view,) = await service.views([complaint])
        assert view.submitter_name == "Unknown User"


class TestUpdateOwn:
    async def test_edit_while_pending(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        updated = await service.update_own(complaint.id, ComplaintEdit(priority=ComplaintPriority.CRITICAL), citizen)
        assert updated.priority == ComplaintPriority.CRITICAL
        assert updated.updated_at is not None

    async def test_not_owner(self, service, citizen, other_citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        with pytest.raises(AuthorizationError):
            await service.update_own(complaint.id, ComplaintEdit(address="Elsewhere"), other_citizen)

    async def test_not_pending(self, service, citizen, make_complaint) -> None:
        complaint = await make_complaint(ComplaintStatus.APPROVED)
        with pytest.raises(ValidationError):
            await service.update_own(complaint.id, ComplaintEdit(address="Elsewhere"), citizen)

    async def test_retitle_to_existing_title(self, service, citizen) -> None:
        await service.create_complaint(citizen, draft(title="Broken streetlight"))
        second = await service.create_complaint(citizen, draft(title="Flickering streetlight"))
        with pytest.raises(DuplicateComplaintError):
            await service.update_own(second.id, ComplaintEdit(title="Broken streetlight"), citizen)

    async def test_keeping_own_title_is_fine(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        updated = await service.update_own(complaint.id, ComplaintEdit(title="Broken streetlight"), citizen)
        assert updated.title == "Broken streetlight"

    @pytest.mark.parametrize("field", ["title", "description"])
    async def test_blank_after_trim_is_rejected(self, service, store, citizen, field) -> None:
        complaint = await service.create_complaint(citizen, draft())
        with pytest.raises(ValidationError):
            await service.update_own(complaint.id, ComplaintEdit(**{field: " " * 12}), citizen)
        unchanged = await store.get_complaint(complaint.id)
        assert unchanged.title == "Broken streetlight"
        assert unchanged.description.startswith("The streetlight")

    async def test_edited_fields_are_trimmed(self, service, citizen) -> None:
        complaint = await service.create_complaint(citizen, draft())
        updated = await service.update_own(
            complaint.id,
            ComplaintEdit(description="  Still dark after the repair visit.  ", address=" Lane 5 "),
            citizen,
        )
        assert updated.description == "Still dark after the repair visit."
        assert updated.address == "Lane 5"

    async def test_edit_racing_approval_is_refused(self, store, directory, citizen) -> None:
        creator = ComplaintService(store, directory, storage=store)
        complaint = await creator.create_complaint(citizen, draft())
        racing = ComplaintService(ApprovedMidEditStore(store), directory, storage=store)

        with pytest.raises(ValidationError):
            await racing.update_own(complaint.id, ComplaintEdit(address="Elsewhere"), citizen)

        final = await store.get_complaint(complaint.id)
        assert final.status == ComplaintStatus.APPROVED
        assert final.address != "Elsewhere"
