"""Result objects produced by the AI advisory services.

None of these is authoritative: they pre-fill or hint, and a human (or
the confidence + lexical-match gate) decides what is applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class CategorySuggestion:
    category: str
    confidence: float
    reasoning: str = ""


@dataclass(slots=True)
class ImageAnalysis:
    title: str
    description: str
    suggested_category: str
    confidence: float
    details: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ExtractedComplaint:
    """A complaint recognised inside a free-form chat message."""

    is_complaint: bool
    title: str
    description: str
    category: str
    severity: str = "medium"
    confidence: float = 0.0


@dataclass(slots=True)
class AnalyzeResult:
    """Response of the optional analyze-by-URL webhook."""

    label: str
    confidence: float
    notes: str = ""


@dataclass(slots=True)
class CategoryMatch:
    """Outcome of gating a suggestion against the local category list.

    ``auto_applied`` is True only when the suggestion cleared the
    confidence threshold *and* matched an existing category by name.
    """

    suggestion: CategorySuggestion
    category_id: str | None = None
    category_name: str | None = None
    auto_applied: bool = False
