"""Municipal office contact details, looked up by PIN code."""

from __future__ import annotations

from pydantic import BaseModel


class MunicipalOffice(BaseModel):
    """The civic body a citizen can contact for a given PIN code."""

    pincode: str
    office_name: str
    contact: str
    city: str
    latitude: float
    longitude: float
