"""Dashboard statistics (admin and public community) and CSV export."""

from __future__ import annotations

import csv
import io
from collections import Counter
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Final

from src.models.complaint import ComplaintView
from src.models.enums import ComplaintStatus

CSV_HEADERS: Final[list[str]] = [
    "ID",
    "Title",
    "Description",
    "Status",
    "Priority",
    "Category",
    "Department",
    "Created By",
    "Created At",
]


@dataclass(slots=True)
class ComplaintStats:
    total: int
    pending: int
    active: int
    resolved: int
    pending_verification: int
    reopened: int
    rejected: int
    resolution_rate: float


@dataclass(slots=True)
class DailyCount:
    day: date
    complaints: int
    resolved: int


@dataclass(slots=True)
class CommunityStats:
    total: int
    today: int
    this_week: int
    resolved: int
    pending: int
    top_category: str | None


def compute_stats(views: list[ComplaintView]) -> ComplaintStats:
    counts = Counter(v.complaint.status for v in views)
    total = len(views)
    resolved = counts[ComplaintStatus.RESOLVED]
    return ComplaintStats(
        total=total,
        pending=counts[ComplaintStatus.PENDING],
        active=counts[ComplaintStatus.APPROVED] + counts[ComplaintStatus.IN_PROGRESS],
        resolved=resolved,
        pending_verification=counts[ComplaintStatus.PENDING_VERIFICATION],
        reopened=counts[ComplaintStatus.REOPENED],
        rejected=counts[ComplaintStatus.REJECTED],
        resolution_rate=round(resolved / total * 100, 1) if total else 0.0,
    )


def daily_trend(views: list[ComplaintView], *, days: int = 7, today: date | None = None) -> list[DailyCount]:
    """Complaints created per day over the last *days* days, oldest first.

    ``resolved`` counts the complaints created that day which are
    resolved now.
    """
    today = today or datetime.now(UTC).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    created: Counter[date] = Counter()
    resolved: Counter[date] = Counter()
    for v in views:
        day = v.complaint.created_at.astimezone(UTC).date()
        created[day] += 1
        if v.complaint.status == ComplaintStatus.RESOLVED:
            resolved[day] += 1
    return [DailyCount(day=d, complaints=created[d], resolved=resolved[d]) for d in window]


def community_stats(views: list[ComplaintView], *, now: datetime | None = None) -> CommunityStats:
    """Summary shown above the public feed.

    ``today`` is the current UTC calendar day; ``this_week`` is the last
    seven days counted back from *now*.  Complaints without a category
    count towards ``Other`` when picking ``top_category``.
    """
    now = now or datetime.now(UTC)
    today = now.astimezone(UTC).date()
    week_ago = now - timedelta(days=7)
    statuses = Counter(v.complaint.status for v in views)
    categories = Counter(v.category_name or "Other" for v in views)
    top = categories.most_common(1)
    return CommunityStats(
        total=len(views),
        today=sum(1 for v in views if v.complaint.created_at.astimezone(UTC).date() == today),
        this_week=sum(1 for v in views if v.complaint.created_at >= week_ago),
        resolved=statuses[ComplaintStatus.RESOLVED],
        pending=statuses[ComplaintStatus.PENDING],
        top_category=top[0][0] if top else None,
    )


def _cell(text: str) -> str:
    # Commas are replaced with semicolons rather than quoted.
    return text.replace(",", ";")


def export_csv(views: list[ComplaintView]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for v in views:
        c = v.complaint
        writer.writerow([
            c.id,
            _cell(c.title),
            _cell(c.description),
            c.status.value,
            c.priority.value,
            v.category_name or "N/A",
            v.department_name or "N/A",
            v.submitter_name or "Unknown",
            c.created_at.isoformat(),
        ])
    return buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    today = today or datetime.now(UTC).date()
    return f"echocity-complaints-{today.isoformat()}.csv"
