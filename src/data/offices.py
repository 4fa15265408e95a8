"""Municipal office directory for major Indian cities, keyed by PIN code.

Covers the central PIN code of each city only; areas not listed here
have no known office.
"""

from __future__ import annotations

import re
from typing import Final

from src.models.office import MunicipalOffice

PINCODE_PATTERN: Final = re.compile(r"^\d{6}$")

# pincode -> (office name, contact number, city, latitude, longitude)
_OFFICES: Final[dict[str, tuple[str, str, str, float, float]]] = {
    "110001": ("Connaught Place Municipal Office", "011-23456789", "New Delhi", 28.6330, 77.2193),
    "400001": ("Mumbai Municipal Corporation - Fort", "022-22694725", "Mumbai", 18.9300, 72.8200),
    "400051": ("Bandra West Ward Office", "022-26451234", "Mumbai", 19.0544, 72.8402),
    "560001": ("Majestic Area Civic Center", "080-22987654", "Bangalore", 12.9767, 77.5713),
    "600001": ("Parry's Corner Corporation Office", "044-25384567", "Chennai", 13.0885, 80.2828),
    "500001": ("Hyderabad Greater Municipal Corporation", "040-23456789", "Hyderabad", 17.3850, 78.4867),
    "700001": ("Kolkata Municipal Corporation - BBD Bagh", "033-22143526", "Kolkata", 22.5726, 88.3639),
    "380001": ("Ahmedabad Municipal Corporation", "079-25506644", "Ahmedabad", 23.0225, 72.5714),
    "411001": ("Pune Municipal Corporation - PMC", "020-26128394", "Pune", 18.5204, 73.8567),
    "302001": ("Jaipur Municipal Corporation", "0141-2743943", "Jaipur", 26.9124, 75.7873),
}


def _office(pincode: str) -> MunicipalOffice:
    name, contact, city, latitude, longitude = _OFFICES[pincode]
    return MunicipalOffice(
        pincode=pincode,
        office_name=name,
        contact=contact,
        city=city,
        latitude=latitude,
        longitude=longitude,
    )


def lookup_office(pincode: str) -> MunicipalOffice | None:
    pincode = pincode.strip()
    if pincode not in _OFFICES:
        return None
    return _office(pincode)


def list_offices() -> list[MunicipalOffice]:
    return [_office(pincode) for pincode in sorted(_OFFICES)]
