from __future__ import annotations

from enum import StrEnum


class ComplaintStatus(StrEnum):
    """Lifecycle states of a complaint.

    ``pending-verification`` keeps its hyphen: it is the value stored in
    the ``complaints.status`` column.
    """

    __slots__ = ()

    PENDING = "pending"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    PENDING_VERIFICATION = "pending-verification"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    REOPENED = "reopened"


class ComplaintPriority(StrEnum):
    __slots__ = ()

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UserRole(StrEnum):
    __slots__ = ()

    CITIZEN = "citizen"
    ADMIN = "admin"


class ActorKind(StrEnum):
    """Who may trigger a lifecycle transition."""

    __slots__ = ()

    ADMIN = "admin"
    OWNER = "owner"
