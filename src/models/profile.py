"""Profile and session models.

The ``role`` on a :class:`Profile` is only ever read from the data
service.  :class:`ProfileUpdate` has no ``role`` field, so a client can
never promote itself through the profile endpoint.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from src.models.enums import UserRole


class Profile(BaseModel):
    id: str
    full_name: str = ""
    role: UserRole = UserRole.CITIZEN
    phone: str | None = None
    address: str | None = None
    city: str = ""
    state: str = ""
    pincode: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    pincode: str | None = Field(default=None, pattern=r"^\d{6}$")


class Identity(BaseModel):
    """The authenticated user as reported by the auth provider."""

    user_id: str
    email: str | None = None


class SessionContext(BaseModel):
    """Resolved session: who is calling and whether they are an admin.

    ``role_checked`` is False when the role lookup timed out or failed;
    ``is_admin`` is then False until the next successful check.
    """

    identity: Identity
    is_admin: bool = False
    role_checked: bool = True

    @property
    def user_id(self) -> str:
        return self.identity.user_id
