"""Local stand-in for the image analysis webhook.

Labels an image by keywords in its URL so the submission flow can be
exercised without a real vision backend.  Point ``ANALYZE_URL`` at
``http://localhost:8000/analyze`` to use it.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["analyze"])

_KEYWORD_LABELS: tuple[tuple[str, str], ...] = (
    ("pothole", "pothole"),
    ("trash", "waste_overflow"),
)


class AnalyzeRequest(BaseModel):
    image_url: str | None = None


class AnalyzeResponse(BaseModel):
    label: str
    confidence: float
    notes: str


def label_for_url(image_url: str) -> str:
    lowered = image_url.lower()
    for keyword, label in _KEYWORD_LABELS:
        if keyword in lowered:
            return label
    return "other"


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(body: AnalyzeRequest):
    if not body.image_url:
        return ORJSONResponse(status_code=400, content={"error": "image_url required"})
    label = label_for_url(body.image_url)
    logger.info("analyze.stub_labelled", label=label)
    return AnalyzeResponse(label=label, confidence=0.85, notes="stub analysis")
