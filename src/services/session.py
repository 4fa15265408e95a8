"""Session and role resolution.

Turns a bearer token into a :class:`~src.models.profile.SessionContext`.
Admin status is derived only from the ``profiles.role`` column (and the
``user_roles`` table) in the data service, never from anything the
client sends.

The role lookup fails closed: a missing profile, a store error, or a
lookup slower than the configured bound all yield ``is_admin=False``.
The lookup runs in its own task so that token validation never waits
on it inline and a hung store cannot hang the request.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.models.enums import UserRole
from src.models.profile import Identity, SessionContext
from src.services.errors import AuthenticationError

if TYPE_CHECKING:
    from src.services.store import AuthProvider, RecordStore

logger = structlog.get_logger(__name__)


class SessionResolver:
    """Resolve the caller's identity and admin privilege.

    Parameters
    ----------
    auth:
        Auth provider that maps a session token to a user.
    store:
        Record store holding ``profiles`` and ``user_roles``.
    role_check_timeout:
        Upper bound, in seconds, on the role lookup.
    """

    __slots__ = ("_auth", "_role_check_timeout", "_store")

    def __init__(
        self,
        auth: AuthProvider,
        store: RecordStore,
        *,
        role_check_timeout: float = 3.0,
    ) -> None:
        self._auth = auth
        self._store = store
        self._role_check_timeout = role_check_timeout

    async def resolve(self, token: str | None) -> SessionContext:
        """Resolve *token* or raise :class:`AuthenticationError`."""
        if not token:
            raise AuthenticationError()

        identity = await self._auth.get_user(token)
        if identity is None:
            logger.info("session.token_rejected")
            raise AuthenticationError()

        is_admin, role_checked = await self._bounded_role_check(identity)
        return SessionContext(
            identity=identity,
            is_admin=is_admin,
            role_checked=role_checked,
        )

    async def _bounded_role_check(self, identity: Identity) -> tuple[bool, bool]:
        task = asyncio.create_task(self.check_admin(identity.user_id))
        try:
            return await asyncio.wait_for(task, timeout=self._role_check_timeout), True
        except TimeoutError:
            logger.warning(
                "session.role_check_timed_out",
                user_id=identity.user_id,
                timeout_s=self._role_check_timeout,
            )
            return False, False
        except Exception:
            logger.warning("session.role_check_failed", user_id=identity.user_id, exc_info=True)
            return False, False

    async def check_admin(self, user_id: str) -> bool:
        """Return True only if the stored profile grants the admin role."""
        profile = await self._store.get_profile(user_id)
        if profile is None:
            # Usually a brand-new account whose profile row is not written yet.
            logger.info("session.profile_missing", user_id=user_id)
            return False

        if profile.role == UserRole.ADMIN:
            return True

        roles = await self._store.get_roles(user_id)
        return UserRole.ADMIN in roles
