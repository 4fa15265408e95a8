"""Session authentication dependencies for protected endpoints.

Reads the ``Authorization: Bearer <token>`` header issued by the auth
provider and resolves it through the app's
:class:`~src.services.session.SessionResolver`.  Admin-gated routes
wait for the role lookup to finish before granting anything; a session
whose role could not be confirmed is treated as a citizen.
"""

from __future__ import annotations

import structlog
from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.models.profile import SessionContext
from src.services.errors import AuthorizationError, RemoteServiceError
from src.services.session import SessionResolver

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _resolver(request: Request) -> SessionResolver:
    resolver = getattr(request.app.state, "session_resolver", None)
    if resolver is None:
        raise RemoteServiceError("Sign-in is not available right now.")
    return resolver


async def require_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> SessionContext:
    """FastAPI dependency: the signed-in caller, or 401.

    Usage::

        @router.get("/complaints/mine")
        async def mine(session: SessionContext = Depends(require_session)): ...
    """
    token = credentials.credentials if credentials else None
    session = await _resolver(request).resolve(token)
    structlog.contextvars.bind_contextvars(user_id=session.user_id)
    return session


async def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> SessionContext:
    """FastAPI dependency: the signed-in caller if they are an admin, else 401/403."""
    session = await require_session(request, credentials)
    if not session.is_admin:
        logger.warning(
            "auth.admin_denied",
            user_id=session.user_id,
            role_checked=session.role_checked,
            path=request.url.path,
        )
        raise AuthorizationError()
    return session
