"""Municipal office lookup endpoints for EchoCity API v1.

Public: lets a citizen find whom to contact for their area before (or
instead of) filing a complaint.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from pydantic import BaseModel

from src.data.offices import PINCODE_PATTERN, list_offices, lookup_office
from src.models.office import MunicipalOffice
from src.services.errors import NotFoundError, ValidationError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/offices", tags=["offices"])


class OfficeList(BaseModel):
    offices: list[MunicipalOffice]
    total: int


@router.get("", response_model=OfficeList)
async def all_offices() -> OfficeList:
    offices = list_offices()
    return OfficeList(offices=offices, total=len(offices))


@router.get("/{pincode}", response_model=MunicipalOffice)
async def office_for_pincode(pincode: str) -> MunicipalOffice:
    """Municipal office responsible for a 6-digit PIN code."""
    pincode = pincode.strip()
    if not PINCODE_PATTERN.match(pincode):
        raise ValidationError("Invalid PIN code. Must be 6 digits.")

    office = lookup_office(pincode)
    if office is None:
        logger.info("api.offices.unknown_pincode", pincode=pincode)
        raise NotFoundError(f"No municipal office on record for PIN code {pincode}.")
    return office
