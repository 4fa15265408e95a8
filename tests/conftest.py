"""Shared fixtures: a seeded in-memory store and ready-made sessions."""

from __future__ import annotations

import pytest

from src.models.complaint import Category, Complaint, Department
from src.models.enums import ComplaintStatus, UserRole
from src.models.profile import Identity, Profile, SessionContext
from src.services.directory import CategoryDirectory
from src.services.store import InMemoryStore

ROADS_ID = "dept-roads"
LIGHTS_ID = "dept-lights"
POTHOLES_ID = "cat-potholes"
STREETLIGHT_ID = "cat-streetlight"
OTHER_ID = "cat-other"


def session_for(user_id: str, *, is_admin: bool = False) -> SessionContext:
    return SessionContext(identity=Identity(user_id=user_id, email=f"{user_id}@example.com"), is_admin=is_admin)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_department(Department(id=ROADS_ID, name="Roads & Infrastructure"))
    s.add_department(Department(id=LIGHTS_ID, name="Electricity"))
    s.add_category(Category(id=POTHOLES_ID, name="Potholes", department_id=ROADS_ID))
    s.add_category(Category(id=STREETLIGHT_ID, name="Street Lighting", department_id=LIGHTS_ID))
    s.add_category(Category(id=OTHER_ID, name="Other", department_id=None))

    s.add_profile(Profile(id="citizen-1", full_name="Asha Rao"))
    s.add_profile(Profile(id="citizen-2", full_name="Ravi Kumar"))
    s.add_profile(Profile(id="admin-1", full_name="City Admin", role=UserRole.ADMIN))

    s.issue_token("citizen-token", Identity(user_id="citizen-1", email="asha@example.com"))
    s.issue_token("other-token", Identity(user_id="citizen-2", email="ravi@example.com"))
    s.issue_token("admin-token", Identity(user_id="admin-1", email="admin@example.com"))
    return s


@pytest.fixture
def directory(store: InMemoryStore) -> CategoryDirectory:
    return CategoryDirectory(store)


@pytest.fixture
def citizen() -> SessionContext:
    return session_for("citizen-1")


@pytest.fixture
def other_citizen() -> SessionContext:
    return session_for("citizen-2")


@pytest.fixture
def admin() -> SessionContext:
    return session_for("admin-1", is_admin=True)


@pytest.fixture
def make_complaint(store: InMemoryStore):
    """Insert a complaint owned by ``citizen-1`` in the given status."""

    async def _make(status: ComplaintStatus = ComplaintStatus.PENDING, **overrides) -> Complaint:
        fields = {
            "user_id": "citizen-1",
            "title": "Deep pothole on MG Road",
            "description": "A large pothole near the bus stop is damaging vehicles.",
            "status": status,
            "category_id": POTHOLES_ID,
            "department_id": ROADS_ID,
            **overrides,
        }
        return await store.insert_complaint(Complaint(**fields))

    return _make
