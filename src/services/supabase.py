"""Client for the hosted Supabase project (auth, rows, file storage).

Talks to the three Supabase HTTP surfaces with a single pooled
``httpx.AsyncClient``:

* ``/auth/v1/user`` -- resolve a session token to its user
* ``/rest/v1/<table>`` -- PostgREST row access (``col=eq.value`` filters)
* ``/storage/v1/object/<bucket>/<path>`` -- evidence uploads

Every transport or HTTP failure is raised as
:class:`~src.services.errors.RemoteServiceError` so the API layer can
render a retryable notice.  Only the auth lookup treats 401/403 as a
normal outcome (an invalid token), returning ``None``.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from src.models.complaint import Category, Complaint, Department
from src.models.enums import ComplaintStatus, UserRole
from src.models.profile import Identity, Profile
from src.services.errors import NotFoundError, RemoteServiceError, StaleRecordError

logger = structlog.get_logger(__name__)


class SupabaseClient:
    """Supabase-backed implementation of the store protocols.

    Parameters
    ----------
    url:
        Project URL, e.g. ``https://<ref>.supabase.co``.
    api_key:
        Anon (or service-role) key sent as ``apikey`` and as the default
        bearer for row and storage access.
    bucket:
        Storage bucket for complaint images.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional ``httpx`` transport, used by tests to stub the network.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        bucket: str = "complaint-images",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._bucket = bucket
        self._client = httpx.AsyncClient(
            base_url=self._url,
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "User-Agent": "EchoCity/1.0",
            },
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/rest/v1/categories", params={"select": "id", "limit": "1"})
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
                content=content,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "supabase.http_error",
                method=method,
                path=path,
                status=exc.response.status_code,
            )
            raise RemoteServiceError() from exc
        except httpx.HTTPError as exc:
            logger.warning("supabase.request_failed", method=method, path=path, error=str(exc))
            raise RemoteServiceError() from exc
        return response

    async def _select(self, table: str, **filters: str) -> list[dict[str, Any]]:
        params = {"select": "*", **filters}
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    @staticmethod
    def _eq(value: str) -> str:
        return f"eq.{value}"

    # ------------------------------------------------------------------
    # Profiles and roles
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Profile | None:
        rows = await self._select("profiles", id=self._eq(user_id))
        return Profile.model_validate(rows[0]) if rows else None

    async def get_profiles(self, user_ids: list[str]) -> list[Profile]:
        if not user_ids:
            return []
        id_list = ",".join(user_ids)
        rows = await self._select("profiles", id=f"in.({id_list})")
        return [Profile.model_validate(row) for row in rows]

    async def upsert_profile(self, profile: Profile) -> Profile:
        response = await self._request(
            "POST",
            "/rest/v1/profiles",
            json=profile.model_dump(mode="json", exclude={"role"}),
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return Profile.model_validate(response.json()[0])

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        response = await self._request(
            "PATCH",
            "/rest/v1/profiles",
            params={"id": self._eq(user_id)},
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise NotFoundError(f"Profile '{user_id}' not found.")
        return Profile.model_validate(rows[0])

    async def get_roles(self, user_id: str) -> list[UserRole]:
        rows = await self._select("user_roles", user_id=self._eq(user_id))
        roles: list[UserRole] = []
        for row in rows:
            try:
                roles.append(UserRole(row.get("role", "")))
            except ValueError:
                logger.warning("supabase.unknown_role", user_id=user_id, role=row.get("role"))
        return roles

    # ------------------------------------------------------------------
    # Directory tables
    # ------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        rows = await self._select("categories", order="name")
        return [Category.model_validate(row) for row in rows]

    async def list_departments(self) -> list[Department]:
        rows = await self._select("departments", order="name")
        return [Department.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Complaints
    # ------------------------------------------------------------------

    async def get_complaint(self, complaint_id: str) -> Complaint | None:
        rows = await self._select("complaints", id=self._eq(complaint_id))
        return Complaint.model_validate(rows[0]) if rows else None

    async def find_complaints(
        self,
        *,
        user_id: str | None = None,
        title: str | None = None,
        status: ComplaintStatus | None = None,
        limit: int | None = None,
    ) -> list[Complaint]:
        filters: dict[str, str] = {"order": "created_at.desc"}
        if limit is not None:
            filters["limit"] = str(limit)
        if user_id is not None:
            filters["user_id"] = self._eq(user_id)
        if title is not None:
            filters["title"] = self._eq(title)
        if status is not None:
            filters["status"] = self._eq(status.value)
        rows = await self._select("complaints", **filters)
        return [Complaint.model_validate(row) for row in rows]

    async def insert_complaint(self, complaint: Complaint) -> Complaint:
        response = await self._request(
            "POST",
            "/rest/v1/complaints",
            json=complaint.model_dump(mode="json", exclude_none=True),
            headers={"Prefer": "return=representation"},
        )
        return Complaint.model_validate(response.json()[0])

    async def update_complaint(
        self,
        complaint_id: str,
        fields: dict[str, Any],
        *,
        expected_status: ComplaintStatus | None = None,
    ) -> Complaint:
        payload = {
            key: value.isoformat() if hasattr(value, "isoformat") else value
            for key, value in fields.items()
        }
        params = {"id": self._eq(complaint_id)}
        if expected_status is not None:
            params["status"] = self._eq(expected_status.value)
        response = await self._request(
            "PATCH",
            "/rest/v1/complaints",
            params=params,
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows and expected_status is not None:
            if await self.get_complaint(complaint_id) is not None:
                logger.info("supabase.complaint_stale", complaint_id=complaint_id, expected=expected_status.value)
                raise StaleRecordError()
        if not rows:
            raise NotFoundError(f"Complaint '{complaint_id}' not found.")
        return Complaint.model_validate(rows[0])

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def get_user(self, token: str) -> Identity | None:
        """Return the user behind *token*, or ``None`` if it is not valid."""
        try:
            response = await self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("supabase.auth_request_failed", error=str(exc))
            raise RemoteServiceError() from exc

        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            logger.warning("supabase.auth_http_error", status=response.status_code)
            raise RemoteServiceError()

        data = response.json()
        return Identity(user_id=data["id"], email=data.get("email"))

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def public_url(self, path: str) -> str:
        return f"{self._url}/storage/v1/object/public/{self._bucket}/{quote(path)}"

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        await self._request(
            "POST",
            f"/storage/v1/object/{self._bucket}/{quote(path)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "Cache-Control": "3600",
                "x-upsert": "false",
            },
        )
        url = self.public_url(path)
        logger.info("supabase.upload_completed", path=path, size=len(data))
        return url
