"""AI advisory services for EchoCity.

Category suggestion, description enhancement, image analysis, complaint
extraction from chat messages, civic Q&A, and the optional
analyze-by-URL webhook.

Nothing here is authoritative.  Every call is bounded by a timeout, and
any failure (no model configured, network error, timeout, unparseable
output) degrades to "no suggestion" -- ``None`` -- so the complaint
flow always proceeds without enrichment.  A suggested category is only
auto-applied when it clears the confidence threshold *and* matches an
existing category by name; see :func:`gate_suggestion`.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import TYPE_CHECKING, Final

import httpx
import structlog

from src.models.advisory import (
    AnalyzeResult,
    CategoryMatch,
    CategorySuggestion,
    ExtractedComplaint,
    ImageAnalysis,
)
from src.services.directory import match_category

if TYPE_CHECKING:
    from src.models.complaint import Category
    from src.services.llm import LLMService

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES: Final[tuple[str, ...]] = (
    "Potholes",
    "Waste Management",
    "Drainage Issues",
    "Traffic Issues",
    "Street Lighting",
    "Water Supply",
    "Public Safety",
    "Noise Pollution",
    "Air Pollution",
    "Other",
)

_SEVERITIES: Final[frozenset[str]] = frozenset({"low", "medium", "high", "critical"})

CHAT_UNAVAILABLE: Final[str] = (
    "I'm sorry, the AI assistant is not configured right now. "
    "You can still file a complaint using the complaint form."
)
CHAT_FAILED: Final[str] = "I'm sorry, I'm having trouble right now. Please try again in a moment."

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_CATEGORIZE_PROMPT: Final[str] = """\
Analyze this civic issue and categorize it into one of these categories:
{categories}

Description: "{description}"
{image_note}

Respond with a JSON object in this format:
{{"category": "category_name", "confidence": 0.85, \
"reasoning": "Brief explanation of why this category was chosen"}}\
"""

_ENHANCE_PROMPT: Final[str] = """\
Enhance this civic issue description to be clearer and more detailed \
while keeping it concise.

Original: "{description}"

Make it specific and actionable, keep the original meaning, keep it \
professional but accessible, and limit it to 2-3 sentences.

Return only the enhanced description.\
"""

_IMAGE_PROMPT: Final[str] = """\
Analyze this civic complaint image and provide:

1. A clear, concise TITLE (5-10 words) describing the issue
2. A detailed DESCRIPTION (2-3 sentences) of what you see
3. The most appropriate CATEGORY from: {categories}
4. SPECIFIC DETAILS about the issue (location markers, severity, urgency)

Format your response as:
TITLE: [title]
DESCRIPTION: [description]
CATEGORY: [category name]
DETAILS:
- [detail]\
"""

_EXTRACT_PROMPT: Final[str] = """\
Analyze if this message describes a civic complaint that needs to be filed.

User message: "{message}"

Questions like "Where is the nearest hospital?" are NOT complaints. \
Reports like "Garbage hasn't been collected in 3 days" are.

Format response as:
IS_COMPLAINT: [true/false]
TITLE: [short title if complaint]
DESCRIPTION: [description if complaint]
CATEGORY: [one of: {categories}]
SEVERITY: [low/medium/high/critical]\
"""

# ---------------------------------------------------------------------------
# Parsing (pure functions)
# ---------------------------------------------------------------------------

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_CATEGORY_TEXT = re.compile(r"category['\":\s]*([^'\",\n]+)", re.IGNORECASE)
_BULLET = re.compile(r"^\s*(?:[-*•])\s*")


def _clamp(value: object, default: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return min(1.0, max(0.0, number))


def parse_category_suggestion(text: str) -> CategorySuggestion | None:
    """Parse a categorization reply.

    Accepts bare or code-fenced JSON; falls back to a ``category: X``
    phrase (at confidence 0.6).  Returns ``None`` when neither is found.
    """
    text = (text or "").strip()
    if not text:
        return None

    match = _JSON_OBJECT.search(text)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            category = str(data.get("category") or "").strip()
            if category:
                return CategorySuggestion(
                    category=category,
                    confidence=_clamp(data.get("confidence"), 0.7),
                    reasoning=str(data.get("reasoning") or "Automated categorization"),
                )

    fallback = _CATEGORY_TEXT.search(text)
    if fallback:
        category = fallback.group(1).strip().strip("{}").strip()
        if category:
            return CategorySuggestion(
                category=category,
                confidence=0.6,
                reasoning="Automated categorization based on description",
            )
    return None


def _labelled(line: str, label: str) -> str | None:
    prefix = f"{label}:"
    stripped = line.strip().lstrip("*").strip()
    if stripped.upper().startswith(prefix):
        return stripped[len(prefix):].strip().strip("*").strip()
    return None


def parse_image_analysis(text: str) -> ImageAnalysis | None:
    """Parse a ``TITLE:/DESCRIPTION:/CATEGORY:/DETAILS:`` reply.

    Bullet lines become ``details``.  When the labels are missing the
    first sentence becomes the title and the leading text the
    description, at a lower confidence.
    """
    text = (text or "").strip()
    if not text:
        return None

    title = description = category = ""
    details: list[str] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if (value := _labelled(line, "TITLE")) is not None:
            title = value
        elif (value := _labelled(line, "DESCRIPTION")) is not None:
            description = value
        elif (value := _labelled(line, "CATEGORY")) is not None:
            category = value
        elif _labelled(line, "DETAILS") is not None:
            continue
        elif _BULLET.match(line):
            detail = _BULLET.sub("", line).strip()
            if detail:
                details.append(detail)

    if title and description:
        return ImageAnalysis(
            title=title,
            description=description,
            suggested_category=category or "Other",
            confidence=0.85,
            details=details,
        )

    sentences = [s.strip() for s in text.split(".") if s.strip()]
    return ImageAnalysis(
        title=title or (sentences[0][:80] if sentences else "Civic Issue Detected"),
        description=description or text[:200],
        suggested_category=category or "Other",
        confidence=0.6,
        details=details,
    )


def parse_extracted_complaint(text: str) -> ExtractedComplaint | None:
    text = (text or "").strip()
    if not text:
        return None

    is_complaint = False
    title = description = ""
    category = "Other"
    severity = "medium"
    for line in text.splitlines():
        if (value := _labelled(line, "IS_COMPLAINT")) is not None:
            is_complaint = value.lower().startswith("true")
        elif (value := _labelled(line, "TITLE")) is not None:
            title = value
        elif (value := _labelled(line, "DESCRIPTION")) is not None:
            description = value
        elif (value := _labelled(line, "CATEGORY")) is not None:
            category = value or category
        elif (value := _labelled(line, "SEVERITY")) is not None:
            if value.lower() in _SEVERITIES:
                severity = value.lower()

    confidence = 0.9 if is_complaint and title and description else 0.5
    return ExtractedComplaint(
        is_complaint=is_complaint,
        title=title or "Civic Issue",
        description=description,
        category=category,
        severity=severity,
        confidence=confidence,
    )


def gate_suggestion(
    suggestion: CategorySuggestion,
    categories: list[Category],
    *,
    threshold: float = 0.7,
) -> CategoryMatch:
    """Decide whether *suggestion* may be auto-applied.

    Auto-applies only when ``confidence > threshold`` and the suggested
    name lexically matches an existing category.  Otherwise the result
    carries the suggestion as a hint (with the matched category, if any,
    for the UI to offer).
    """
    matched = match_category(suggestion.category, categories)
    auto = matched is not None and suggestion.confidence > threshold
    return CategoryMatch(
        suggestion=suggestion,
        category_id=matched.id if matched else None,
        category_name=matched.name if matched else None,
        auto_applied=auto,
    )


def _clean_enhanced(text: str) -> str:
    return text.strip().strip("\"'").strip()


# ---------------------------------------------------------------------------
# AdvisoryService
# ---------------------------------------------------------------------------


class AdvisoryService:
    """Bounded, fail-soft access to the AI advisory features.

    Parameters
    ----------
    llm:
        Gemini service, or ``None`` when AI is not configured.
    http:
        HTTP client for the analyze-by-URL webhook.
    analyze_url:
        Webhook endpoint; blank disables the webhook.
    timeout:
        Upper bound, in seconds, on every AI call.
    threshold:
        Confidence a suggestion must exceed to be auto-applied.
    """

    __slots__ = ("_analyze_url", "_http", "_llm", "_threshold", "_timeout")

    def __init__(
        self,
        llm: LLMService | None,
        *,
        http: httpx.AsyncClient | None = None,
        analyze_url: str = "",
        timeout: float = 15.0,
        threshold: float = 0.7,
    ) -> None:
        self._llm = llm
        self._http = http
        self._analyze_url = analyze_url
        self._timeout = timeout
        self._threshold = threshold

    @property
    def available(self) -> bool:
        return self._llm is not None

    @property
    def threshold(self) -> float:
        return self._threshold

    async def _ask(self, event: str, prompt: str, **kwargs) -> str | None:
        if self._llm is None:
            return None
        try:
            result = await asyncio.wait_for(self._llm.generate(prompt, **kwargs), timeout=self._timeout)
        except TimeoutError:
            logger.warning(f"{event}.timed_out", timeout_s=self._timeout)
            return None
        except Exception:
            logger.warning(f"{event}.failed", exc_info=True)
            return None
        return result.text

    @staticmethod
    def _category_list(categories: list[Category] | None) -> str:
        names = [c.name for c in categories] if categories else list(DEFAULT_CATEGORIES)
        return "\n".join(f"- {name}" for name in names)

    # -- categorization -------------------------------------------------------

    async def suggest_category(
        self,
        description: str,
        *,
        categories: list[Category] | None = None,
        image: bytes | None = None,
        mime_type: str = "image/jpeg",
    ) -> CategorySuggestion | None:
        prompt = _CATEGORIZE_PROMPT.format(
            categories=self._category_list(categories),
            description=description,
            image_note="An image has been provided for additional context." if image else "",
        )
        text = await self._ask(
            "advisory.categorize",
            prompt,
            image=image,
            mime_type=mime_type,
            temperature=0.1,
            json_output=True,
            max_output_tokens=256,
        )
        if text is None:
            return None

        suggestion = parse_category_suggestion(text)
        if suggestion is None:
            logger.warning("advisory.categorize.unparseable", raw=text[:200])
        return suggestion

    async def categorize(
        self,
        description: str,
        categories: list[Category],
        *,
        image: bytes | None = None,
        mime_type: str = "image/jpeg",
    ) -> CategoryMatch | None:
        """Suggest a category and run it through the auto-apply gate."""
        suggestion = await self.suggest_category(
            description, categories=categories, image=image, mime_type=mime_type
        )
        if suggestion is None:
            return None
        match = gate_suggestion(suggestion, categories, threshold=self._threshold)
        logger.info(
            "advisory.categorize.completed",
            suggested=suggestion.category,
            confidence=suggestion.confidence,
            matched=match.category_name,
            auto_applied=match.auto_applied,
        )
        return match

    # -- description ----------------------------------------------------------

    async def enhance_description(self, description: str) -> str:
        """Return a clearer description, or the original on any failure."""
        text = await self._ask(
            "advisory.enhance",
            _ENHANCE_PROMPT.format(description=description),
            temperature=0.4,
            max_output_tokens=256,
        )
        enhanced = _clean_enhanced(text or "")
        return enhanced or description

    # -- images ---------------------------------------------------------------

    async def analyze_image(
        self,
        image: bytes,
        *,
        mime_type: str = "image/jpeg",
        categories: list[Category] | None = None,
    ) -> ImageAnalysis | None:
        names = ", ".join(c.name for c in categories) if categories else ", ".join(DEFAULT_CATEGORIES)
        text = await self._ask(
            "advisory.image",
            _IMAGE_PROMPT.format(categories=names),
            image=image,
            mime_type=mime_type,
            temperature=0.2,
            max_output_tokens=512,
        )
        if text is None:
            return None
        return parse_image_analysis(text)

    async def analyze_url(self, image_url: str) -> AnalyzeResult | None:
        """Ask the analysis webhook to label an already-uploaded image.

        Must only be called with the public URL returned by a completed
        upload.
        """
        if not self._analyze_url or self._http is None:
            return None
        try:
            response = await self._http.post(
                self._analyze_url,
                json={"image_url": image_url},
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.warning("advisory.analyze_url.failed", url=self._analyze_url, exc_info=True)
            return None

        label = str(data.get("label") or "").strip() if isinstance(data, dict) else ""
        if not label:
            return None
        return AnalyzeResult(
            label=label,
            confidence=_clamp(data.get("confidence"), 0.0),
            notes=str(data.get("notes") or ""),
        )

    # -- chat -----------------------------------------------------------------

    async def extract_complaint(
        self,
        message: str,
        *,
        image: bytes | None = None,
        mime_type: str = "image/jpeg",
    ) -> ExtractedComplaint | None:
        text = await self._ask(
            "advisory.extract",
            _EXTRACT_PROMPT.format(message=message, categories=", ".join(DEFAULT_CATEGORIES)),
            image=image,
            mime_type=mime_type,
            temperature=0.1,
            max_output_tokens=384,
        )
        if text is None:
            return None
        return parse_extracted_complaint(text)

    async def chat(self, message: str, *, context: dict | None = None) -> str:
        """Answer a civic question; never raises."""
        if self._llm is None:
            return CHAT_UNAVAILABLE
        prompt = f"User message: {message}"
        if context:
            prompt = f"Context: {json.dumps(context, ensure_ascii=False, default=str)}\n\n{prompt}"
        text = await self._ask("advisory.chat", prompt, temperature=0.7)
        return text.strip() if text and text.strip() else CHAT_FAILED
