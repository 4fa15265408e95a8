"""AI advisory endpoints for EchoCity API v1.

Suggestions only: nothing here writes a complaint.  Every endpoint
answers 200 even when the model is unavailable or slow; the client
falls back to manual entry when a field comes back empty.
"""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field

from src.api.deps import get_advisory, get_directory
from src.middleware.auth import require_session
from src.models.profile import SessionContext
from src.services.advisory import AdvisoryService
from src.services.directory import CategoryDirectory, match_category
from src.services.errors import ValidationError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/advisory", tags=["advisory"])

_MAX_IMAGE_BYTES = 10 * 1024 * 1024


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class CategorizeRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)


class CategorySuggestionResponse(BaseModel):
    category: str
    confidence: float
    reasoning: str


class CategorizeResponse(BaseModel):
    suggestion: CategorySuggestionResponse | None = None
    category_id: str | None = None
    category_name: str | None = None
    auto_applied: bool = False


class EnhanceRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)


class EnhanceResponse(BaseModel):
    description: str
    enhanced: bool


class ImageAnalysisResponse(BaseModel):
    title: str | None = None
    description: str | None = None
    suggested_category: str | None = None
    confidence: float = 0.0
    details: list[str] = Field(default_factory=list)
    category_id: str | None = None


class ExtractRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class ExtractResponse(BaseModel):
    is_complaint: bool = False
    title: str = ""
    description: str = ""
    category: str = ""
    severity: str = "medium"
    confidence: float = 0.0
    category_id: str | None = None


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    context: dict | None = None


class ChatResponse(BaseModel):
    reply: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/categorize", response_model=CategorizeResponse)
async def categorize(
    body: CategorizeRequest,
    session: SessionContext = Depends(require_session),
    advisory: AdvisoryService = Depends(get_advisory),
    directory: CategoryDirectory = Depends(get_directory),
) -> CategorizeResponse:
    """Suggest a category for a description.

    ``auto_applied`` tells the client whether it may pre-select the
    category; otherwise the suggestion is shown for manual choice.
    """
    categories = await directory.categories()
    match = await advisory.categorize(body.description, categories)
    if match is None:
        return CategorizeResponse()
    return CategorizeResponse(
        suggestion=CategorySuggestionResponse(**asdict(match.suggestion)),
        category_id=match.category_id,
        category_name=match.category_name,
        auto_applied=match.auto_applied,
    )


@router.post("/enhance", response_model=EnhanceResponse)
async def enhance(
    body: EnhanceRequest,
    session: SessionContext = Depends(require_session),
    advisory: AdvisoryService = Depends(get_advisory),
) -> EnhanceResponse:
    original = body.description.strip()
    text = await advisory.enhance_description(original)
    return EnhanceResponse(description=text, enhanced=text != original)


@router.post("/analyze-image", response_model=ImageAnalysisResponse)
async def analyze_image(
    image: UploadFile = File(...),
    session: SessionContext = Depends(require_session),
    advisory: AdvisoryService = Depends(get_advisory),
    directory: CategoryDirectory = Depends(get_directory),
) -> ImageAnalysisResponse:
    """Pre-fill title, description and category from a photo."""
    data = await image.read()
    if not data:
        raise ValidationError("The uploaded image is empty.")
    if len(data) > _MAX_IMAGE_BYTES:
        raise ValidationError("Images must be 10 MB or smaller.")

    categories = await directory.categories()
    analysis = await advisory.analyze_image(
        data,
        mime_type=image.content_type or "image/jpeg",
        categories=categories,
    )
    if analysis is None:
        return ImageAnalysisResponse()

    matched = match_category(analysis.suggested_category, categories)
    logger.info(
        "api.advisory.image_analysed",
        suggested=analysis.suggested_category,
        matched=matched.name if matched else None,
        confidence=analysis.confidence,
    )
    return ImageAnalysisResponse(**asdict(analysis), category_id=matched.id if matched else None)


@router.post("/extract", response_model=ExtractResponse)
async def extract(
    body: ExtractRequest,
    session: SessionContext = Depends(require_session),
    advisory: AdvisoryService = Depends(get_advisory),
    directory: CategoryDirectory = Depends(get_directory),
) -> ExtractResponse:
    """Recognise a complaint inside a chat message."""
    extracted = await advisory.extract_complaint(body.message)
    if extracted is None:
        return ExtractResponse()
    matched = await directory.find_category(extracted.category) if extracted.is_complaint else None
    return ExtractResponse(**asdict(extracted), category_id=matched.id if matched else None)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    session: SessionContext = Depends(require_session),
    advisory: AdvisoryService = Depends(get_advisory),
) -> ChatResponse:
    return ChatResponse(reply=await advisory.chat(body.message, context=body.context))
