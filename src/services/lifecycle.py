"""Complaint lifecycle controller.

The single gateway through which a complaint's ``status`` changes.  A
transition is the command ``(complaint, target, session)``; it is
checked against :data:`TRANSITIONS` and the caller's privilege before
anything is written.

Rules enforced here:

* every status written is a :class:`ComplaintStatus` member;
* only admins transition, except the owner's dispute of a resolution
  (``resolved -> pending-verification``);
* moving to ``resolved`` stamps ``resolved_at``; moving away clears it;
* an illegal transition raises and writes nothing;
* asking for the status the record already has is a no-op, and
  concurrent requests for the same record are serialised so two
  identical admin clicks produce one write;
* the write is conditional on the status that was checked, so workers
  in other processes cannot both apply the same move.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

import structlog

from src.models.enums import ActorKind, ComplaintStatus
from src.services.errors import (
    AuthorizationError,
    IllegalTransitionError,
    NotFoundError,
    StaleRecordError,
)

if TYPE_CHECKING:
    from src.models.complaint import Complaint
    from src.models.profile import SessionContext
    from src.services.store import RecordStore

logger = structlog.get_logger(__name__)

_MAX_ATTEMPTS: Final = 3

S = ComplaintStatus

#: Maps (from, to) to the actor allowed to perform it.  Pairs not
#: listed here are illegal; ``rejected`` has no outgoing edges.
TRANSITIONS: Final[dict[tuple[ComplaintStatus, ComplaintStatus], ActorKind]] = {
    (S.PENDING, S.APPROVED): ActorKind.ADMIN,
    (S.PENDING, S.IN_PROGRESS): ActorKind.ADMIN,
    (S.PENDING, S.REJECTED): ActorKind.ADMIN,
    (S.APPROVED, S.IN_PROGRESS): ActorKind.ADMIN,
    (S.APPROVED, S.RESOLVED): ActorKind.ADMIN,
    (S.IN_PROGRESS, S.RESOLVED): ActorKind.ADMIN,
    (S.RESOLVED, S.PENDING_VERIFICATION): ActorKind.OWNER,
    (S.PENDING_VERIFICATION, S.RESOLVED): ActorKind.ADMIN,
    (S.PENDING_VERIFICATION, S.REOPENED): ActorKind.ADMIN,
    (S.REOPENED, S.APPROVED): ActorKind.ADMIN,
    (S.REOPENED, S.IN_PROGRESS): ActorKind.ADMIN,
    (S.REOPENED, S.REJECTED): ActorKind.ADMIN,
}


def allowed_targets(
    current: ComplaintStatus,
    actor: ActorKind | None = None,
) -> list[ComplaintStatus]:
    """Statuses reachable from *current*, optionally only for *actor*."""
    return [
        target
        for (source, target), who in TRANSITIONS.items()
        if source == current and (actor is None or who == actor)
    ]


def is_terminal(status: ComplaintStatus) -> bool:
    return not allowed_targets(status)


class ComplaintLifecycleController:
    """Validate and apply complaint status transitions.

    Parameters
    ----------
    store:
        Record store the complaint rows live in.
    clock:
        Returns the current time; injectable for tests.
    """

    __slots__ = ("_clock", "_locks", "_store")

    def __init__(self, store: RecordStore, *, clock=None) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, complaint_id: str) -> asyncio.Lock:
        lock = self._locks.get(complaint_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[complaint_id] = lock
        return lock

    @staticmethod
    def _authorize(
        complaint: Complaint,
        actor: ActorKind,
        session: SessionContext,
    ) -> None:
        if actor == ActorKind.ADMIN:
            if not session.is_admin:
                raise AuthorizationError()
            return
        if complaint.user_id != session.user_id:
            raise AuthorizationError("Only the person who reported this complaint can dispute it.")

    async def transition(
        self,
        complaint_id: str,
        target: ComplaintStatus | str,
        session: SessionContext,
    ) -> Complaint:
        """Move a complaint to *target* on behalf of *session*.

        Returns the (possibly unchanged) complaint.

        Raises
        ------
        IllegalTransitionError
            *target* is not a status, or not reachable from the current one.
        AuthorizationError
            The caller may not perform this transition.
        NotFoundError
            No complaint with *complaint_id*.
        StaleRecordError
            The record kept changing underneath every attempt.
        """
        try:
            target = ComplaintStatus(target)
        except ValueError:
            raise IllegalTransitionError("unknown", str(target)) from None

        async with self._lock_for(complaint_id):
            for _ in range(_MAX_ATTEMPTS):
                complaint = await self._store.get_complaint(complaint_id)
                if complaint is None:
                    raise NotFoundError(f"Complaint '{complaint_id}' not found.")

                log = logger.bind(
                    complaint_id=complaint_id,
                    user_id=session.user_id,
                    current=complaint.status.value,
                    target=target.value,
                )

                if complaint.status == target:
                    if not (session.is_admin or complaint.user_id == session.user_id):
                        raise AuthorizationError()
                    log.info("complaint.transition.noop")
                    return complaint

                actor = TRANSITIONS.get((complaint.status, target))
                if actor is None:
                    log.info("complaint.transition.illegal")
                    raise IllegalTransitionError(
                        complaint.status.value,
                        target.value,
                        [s.value for s in allowed_targets(complaint.status)],
                    )

                self._authorize(complaint, actor, session)

                now = self._clock()
                fields = {
                    "status": target,
                    "updated_at": now,
                    "resolved_at": now if target == ComplaintStatus.RESOLVED else None,
                }
                try:
                    updated = await self._store.update_complaint(
                        complaint_id,
                        fields,
                        expected_status=complaint.status,
                    )
                except StaleRecordError:
                    # Another worker changed the status; decide again from the new row.
                    log.info("complaint.transition.stale")
                    continue
                log.info("complaint.transition.applied", actor=actor.value)
                return updated

            raise StaleRecordError()

    # -- convenience commands ------------------------------------------------

    async def approve(self, complaint_id: str, session: SessionContext) -> Complaint:
        return await self.transition(complaint_id, ComplaintStatus.APPROVED, session)

    async def start_progress(self, complaint_id: str, session: SessionContext) -> Complaint:
        return await self.transition(complaint_id, ComplaintStatus.IN_PROGRESS, session)

    async def resolve(self, complaint_id: str, session: SessionContext) -> Complaint:
        return await self.transition(complaint_id, ComplaintStatus.RESOLVED, session)

    async def reject(self, complaint_id: str, session: SessionContext) -> Complaint:
        return await self.transition(complaint_id, ComplaintStatus.REJECTED, session)

    async def dispute(self, complaint_id: str, session: SessionContext) -> Complaint:
        """Owner disputes a resolution; an admin must then verify it."""
        return await self.transition(complaint_id, ComplaintStatus.PENDING_VERIFICATION, session)

    async def reopen(self, complaint_id: str, session: SessionContext) -> Complaint:
        return await self.transition(complaint_id, ComplaintStatus.REOPENED, session)
