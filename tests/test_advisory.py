"""Tests for AI advisory parsing, gating and fail-soft behaviour."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from src.models.advisory import CategorySuggestion
from src.models.complaint import Category
from src.services.advisory import (
    CHAT_FAILED,
    CHAT_UNAVAILABLE,
    AdvisoryService,
    gate_suggestion,
    parse_category_suggestion,
    parse_extracted_complaint,
    parse_image_analysis,
)
from src.services.llm import LLMResult

CATEGORIES = [
    Category(id="c1", name="Potholes"),
    Category(id="c2", name="Street Lighting"),
    Category(id="c3", name="Other"),
]


class MockLLMService:
    """Mock LLM service returning a canned reply."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.prompts: list[str] = []

    async def generate(self, prompt, **kwargs):
        self.prompts.append(prompt)
        return LLMResult(text=self.text, tokens_used={"input": 0, "output": 0}, processing_time_ms=1.0)


class SlowLLMService:
    async def generate(self, prompt, **kwargs):
        await asyncio.sleep(5)
        return LLMResult(text="{}", tokens_used={}, processing_time_ms=0.0)


class BrokenLLMService:
    async def generate(self, prompt, **kwargs):
        raise RuntimeError("quota exceeded")


# -----------------------------------------------------------------------
# Parsers
# -----------------------------------------------------------------------


class TestParseCategorySuggestion:
    def test_plain_json(self) -> None:
        s = parse_category_suggestion('{"category": "Potholes", "confidence": 0.92, "reasoning": "Road damage"}')
        assert s == CategorySuggestion(category="Potholes", confidence=0.92, reasoning="Road damage")

    def test_code_fenced_json(self) -> None:
        s = parse_category_suggestion('```json\n{"category": "Street Lighting", "confidence": 0.8}\n```')
        assert s.category == "Street Lighting"
        assert s.confidence == 0.8

    def test_missing_confidence_defaults(self) -> None:
        s = parse_category_suggestion('{"category": "Other"}')
        assert s.confidence == 0.7

    def test_confidence_is_clamped(self) -> None:
        assert parse_category_suggestion('{"category": "Other", "confidence": 7}').confidence == 1.0
        assert parse_category_suggestion('{"category": "Other", "confidence": -1}').confidence == 0.0

    def test_text_fallback(self) -> None:
        s = parse_category_suggestion("I think the category: Potholes fits best")
        assert s.category == "Potholes fits best"
        assert s.confidence == 0.6

    def test_nothing_usable(self) -> None:
        assert parse_category_suggestion("") is None
        assert parse_category_suggestion("no idea") is None


class TestParseImageAnalysis:
    def test_labelled_reply(self) -> None:
        text = (
            "TITLE: Overflowing garbage bin\n"
            "DESCRIPTION: A municipal bin is overflowing onto the footpath.\n"
            "CATEGORY: Waste Management\n"
            "DETAILS:\n"
            "- Near a school gate\n"
            "- Attracting stray animals\n"
        )
        analysis = parse_image_analysis(text)
        assert analysis.title == "Overflowing garbage bin"
        assert analysis.suggested_category == "Waste Management"
        assert analysis.confidence == 0.85
        assert analysis.details == ["Near a school gate", "Attracting stray animals"]

    def test_bold_labels(self) -> None:
        analysis = parse_image_analysis("**TITLE:** Broken light\n**DESCRIPTION:** The pole lamp is dark.")
        assert analysis.title == "Broken light"
        assert analysis.description == "The pole lamp is dark."

    def test_free_text_fallback(self) -> None:
        analysis = parse_image_analysis("A flooded street. Water is knee deep near the market.")
        assert analysis.title == "A flooded street"
        assert analysis.suggested_category == "Other"
        assert analysis.confidence == 0.6

    def test_empty(self) -> None:
        assert parse_image_analysis("   ") is None


class TestParseExtractedComplaint:
    def test_complaint(self) -> None:
        text = (
            "IS_COMPLAINT: true\n"
            "TITLE: Garbage not collected\n"
            "DESCRIPTION: Garbage has not been collected for three days.\n"
            "CATEGORY: Waste Management\n"
            "SEVERITY: high\n"
        )
        extracted = parse_extracted_complaint(text)
        assert extracted.is_complaint is True
        assert extracted.severity == "high"
        assert extracted.confidence == 0.9

    def test_question_is_not_a_complaint(self) -> None:
        extracted = parse_extracted_complaint("IS_COMPLAINT: false\nSEVERITY: extreme")
        assert extracted.is_complaint is False
        assert extracted.severity == "medium"
        assert extracted.confidence == 0.5


# -----------------------------------------------------------------------
# Auto-apply gate
# -----------------------------------------------------------------------


class TestGate:
    def test_confident_lexical_match_auto_applies(self) -> None:
        match = gate_suggestion(CategorySuggestion("Pothole", 0.85, ""), CATEGORIES)
        assert match.auto_applied is True
        assert match.category_id == "c1"
        assert match.category_name == "Potholes"

    def test_low_confidence_is_only_a_hint(self) -> None:
        match = gate_suggestion(CategorySuggestion("Potholes", 0.5, ""), CATEGORIES)
        assert match.auto_applied is False
        assert match.category_id == "c1"

    def test_threshold_is_exclusive(self) -> None:
        match = gate_suggestion(CategorySuggestion("Potholes", 0.7, ""), CATEGORIES)
        assert match.auto_applied is False

    def test_unknown_category_never_applies(self) -> None:
        match = gate_suggestion(CategorySuggestion("Stray Dogs", 0.99, ""), CATEGORIES)
        assert match.auto_applied is False
        assert match.category_id is None


# -----------------------------------------------------------------------
# AdvisoryService
# -----------------------------------------------------------------------


class TestAdvisoryService:
    async def test_categorize(self) -> None:
        llm = MockLLMService('{"category": "Potholes", "confidence": 0.85, "reasoning": "Road"}')
        service = AdvisoryService(llm)
        match = await service.categorize("Big hole in the road", CATEGORIES)
        assert match.auto_applied is True
        assert "Street Lighting" in llm.prompts[0]

    async def test_no_llm_means_no_suggestion(self) -> None:
        service = AdvisoryService(None)
        assert service.available is False
        assert await service.categorize("Big hole", CATEGORIES) is None
        assert await service.analyze_image(b"\x89PNG") is None
        assert await service.chat("hello") == CHAT_UNAVAILABLE

    async def test_timeout_degrades_to_none(self) -> None:
        service = AdvisoryService(SlowLLMService(), timeout=0.05)
        assert await service.suggest_category("Big hole") is None

    async def test_failure_degrades_to_none(self) -> None:
        service = AdvisoryService(BrokenLLMService())
        assert await service.suggest_category("Big hole") is None
        assert await service.extract_complaint("Garbage everywhere") is None
        assert await service.chat("hello") == CHAT_FAILED

    async def test_enhance_falls_back_to_original(self) -> None:
        service = AdvisoryService(BrokenLLMService())
        assert await service.enhance_description("pothole near school") == "pothole near school"

    async def test_enhance_strips_quotes(self) -> None:
        service = AdvisoryService(MockLLMService('"A deep pothole near the school gate needs repair."'))
        text = await service.enhance_description("pothole near school")
        assert text == "A deep pothole near the school gate needs repair."

    async def test_chat_reply(self) -> None:
        llm = MockLLMService("Dial 100 for police.")
        reply = await AdvisoryService(llm).chat("police number?", context={"city": "Mumbai"})
        assert reply == "Dial 100 for police."
        assert "Mumbai" in llm.prompts[0]


class TestAnalyzeUrl:
    @staticmethod
    def _service(handler) -> AdvisoryService:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AdvisoryService(None, http=http, analyze_url="http://analyze.local/analyze")

    async def test_label_returned(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            return httpx.Response(200, json={"label": "pothole", "confidence": 0.85, "notes": "stub"})

        result = await self._service(handler).analyze_url("https://cdn.example/pothole.jpg")
        assert result.label == "pothole"
        assert result.confidence == 0.85
        assert b"pothole.jpg" in seen["body"]

    async def test_http_error_is_no_suggestion(self) -> None:
        result = await self._service(lambda r: httpx.Response(500)).analyze_url("https://cdn.example/x.jpg")
        assert result is None

    async def test_missing_label_is_no_suggestion(self) -> None:
        result = await self._service(lambda r: httpx.Response(200, json={"confidence": 0.9})).analyze_url(
            "https://cdn.example/x.jpg"
        )
        assert result is None

    async def test_disabled_without_url(self) -> None:
        assert await AdvisoryService(None).analyze_url("https://cdn.example/x.jpg") is None
