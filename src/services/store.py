"""Complaint record store: protocol plus an in-process backend.

The production backend is :class:`~src.services.supabase.SupabaseClient`,
which talks to the hosted data service over REST.  The in-memory backend
here implements the same three protocols (rows, auth, file storage) so
the service runs without a Supabase project and tests can inject it as a
test double.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import structlog

from src.models.complaint import Category, Complaint, Department
from src.models.enums import ComplaintStatus, UserRole
from src.models.profile import Identity, Profile
from src.services.errors import NotFoundError, StaleRecordError

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class RecordStore(Protocol):
    """Relational rows: complaints, categories, departments, profiles, roles."""

    async def get_profile(self, user_id: str) -> Profile | None: ...

    async def get_profiles(self, user_ids: list[str]) -> list[Profile]: ...

    async def upsert_profile(self, profile: Profile) -> Profile: ...

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> Profile: ...

    async def get_roles(self, user_id: str) -> list[UserRole]: ...

    async def list_categories(self) -> list[Category]: ...

    async def list_departments(self) -> list[Department]: ...

    async def get_complaint(self, complaint_id: str) -> Complaint | None: ...

    async def find_complaints(
        self,
        *,
        user_id: str | None = None,
        title: str | None = None,
        status: ComplaintStatus | None = None,
        limit: int | None = None,
    ) -> list[Complaint]: ...

    async def insert_complaint(self, complaint: Complaint) -> Complaint: ...

    async def update_complaint(
        self,
        complaint_id: str,
        fields: dict[str, Any],
        *,
        expected_status: ComplaintStatus | None = None,
    ) -> Complaint:
        """Apply *fields*; with *expected_status*, only while the row still has it.

        Raises :class:`StaleRecordError` when the row has another status.
        """
        ...


@runtime_checkable
class AuthProvider(Protocol):
    """Resolves an opaque session token to the user it was issued for."""

    async def get_user(self, token: str) -> Identity | None: ...


@runtime_checkable
class FileStorage(Protocol):
    """Uploads complaint evidence and returns its public URL."""

    async def upload(self, path: str, data: bytes, content_type: str) -> str: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Dict-backed implementation of all three store protocols.

    Rows are copied on the way in and on the way out so callers never
    share mutable state with the store.  Results are ordered newest
    first, like the remote ``order=created_at.desc`` queries.
    """

    __slots__ = (
        "_categories",
        "_complaints",
        "_departments",
        "_files",
        "_lock",
        "_profiles",
        "_roles",
        "_tokens",
    )

    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}
        self._roles: dict[str, set[UserRole]] = {}
        self._categories: dict[str, Category] = {}
        self._departments: dict[str, Department] = {}
        self._complaints: dict[str, Complaint] = {}
        self._tokens: dict[str, Identity] = {}
        self._files: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    # -- seeding (development / tests) ------------------------------------

    def add_department(self, department: Department) -> Department:
        self._departments[department.id] = department.model_copy()
        return department

    def add_category(self, category: Category) -> Category:
        self._categories[category.id] = category.model_copy()
        return category

    def add_profile(self, profile: Profile) -> Profile:
        self._profiles[profile.id] = profile.model_copy()
        return profile

    def grant_role(self, user_id: str, role: UserRole) -> None:
        self._roles.setdefault(user_id, set()).add(role)

    def issue_token(self, token: str, identity: Identity) -> None:
        self._tokens[token] = identity

    def file(self, path: str) -> bytes | None:
        return self._files.get(path)

    # -- RecordStore --------------------------------------------------------

    async def get_profile(self, user_id: str) -> Profile | None:
        profile = self._profiles.get(user_id)
        return profile.model_copy() if profile is not None else None

    async def get_profiles(self, user_ids: list[str]) -> list[Profile]:
        return [self._profiles[uid].model_copy() for uid in user_ids if uid in self._profiles]

    async def upsert_profile(self, profile: Profile) -> Profile:
        async with self._lock:
            self._profiles[profile.id] = profile.model_copy()
        return profile.model_copy()

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        async with self._lock:
            current = self._profiles.get(user_id)
            if current is None:
                current = Profile(id=user_id)
            updated = current.model_copy(update={**fields, "updated_at": datetime.now(UTC)})
            self._profiles[user_id] = updated
        return updated.model_copy()

    async def get_roles(self, user_id: str) -> list[UserRole]:
        return sorted(self._roles.get(user_id, set()))

    async def list_categories(self) -> list[Category]:
        return sorted(
            (c.model_copy() for c in self._categories.values()),
            key=lambda c: c.name,
        )

    async def list_departments(self) -> list[Department]:
        return sorted(
            (d.model_copy() for d in self._departments.values()),
            key=lambda d: d.name,
        )

    async def get_complaint(self, complaint_id: str) -> Complaint | None:
        complaint = self._complaints.get(complaint_id)
        return complaint.model_copy(deep=True) if complaint is not None else None

    async def find_complaints(
        self,
        *,
        user_id: str | None = None,
        title: str | None = None,
        status: ComplaintStatus | None = None,
        limit: int | None = None,
    ) -> list[Complaint]:
        matches = [
            c.model_copy(deep=True)
            for c in self._complaints.values()
            if (user_id is None or c.user_id == user_id)
            and (title is None or c.title == title)
            and (status is None or c.status == status)
        ]
        matches.sort(key=lambda c: c.created_at, reverse=True)
        return matches if limit is None else matches[:limit]

    async def insert_complaint(self, complaint: Complaint) -> Complaint:
        async with self._lock:
            self._complaints[complaint.id] = complaint.model_copy(deep=True)
        logger.debug("store.memory.complaint_inserted", complaint_id=complaint.id)
        return complaint.model_copy(deep=True)

    async def update_complaint(
        self,
        complaint_id: str,
        fields: dict[str, Any],
        *,
        expected_status: ComplaintStatus | None = None,
    ) -> Complaint:
        async with self._lock:
            current = self._complaints.get(complaint_id)
            if current is None:
                raise NotFoundError(f"Complaint '{complaint_id}' not found.")
            if expected_status is not None and current.status != expected_status:
                raise StaleRecordError()
            updated = Complaint.model_validate({**current.model_dump(), **fields})
            self._complaints[complaint_id] = updated
        return updated.model_copy(deep=True)

    # -- AuthProvider -------------------------------------------------------

    async def get_user(self, token: str) -> Identity | None:
        return self._tokens.get(token)

    # -- FileStorage --------------------------------------------------------

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self._files[path] = data
        return f"memory://complaint-images/{path}"
