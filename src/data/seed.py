"""Development seed data for the in-memory store.

Loads the standard municipal departments and complaint categories so a
server started without a Supabase project has a usable complaint form.
Ids are derived with ``uuid5`` and stay stable across restarts.
"""

from __future__ import annotations

import uuid
from typing import Final

import structlog

from src.models.complaint import Category, Department
from src.services.store import InMemoryStore

logger = structlog.get_logger(__name__)

_NAMESPACE: Final[uuid.UUID] = uuid.UUID("6f1c2d8e-4b7a-4e1f-9c3d-2a5b8e7f0c41")

# ---------------------------------------------------------------------------
# Departments and the categories each one handles
# ---------------------------------------------------------------------------

_DEPARTMENTS: Final[dict[str, str]] = {
    "Roads & Infrastructure": "Road surfaces, footpaths and bridges",
    "Sanitation": "Garbage collection and public cleanliness",
    "Water & Drainage": "Water supply, sewers and storm drains",
    "Traffic Police": "Signals, parking and traffic flow",
    "Electricity": "Street lighting and public power lines",
    "Public Safety": "Hazards to residents in public spaces",
    "Environment": "Noise and air quality",
    "General Administration": "Anything not covered elsewhere",
}

#: (category name, icon, department name)
_CATEGORIES: Final[tuple[tuple[str, str, str], ...]] = (
    ("Potholes", "construction", "Roads & Infrastructure"),
    ("Waste Management", "trash", "Sanitation"),
    ("Drainage Issues", "droplets", "Water & Drainage"),
    ("Traffic Issues", "traffic-cone", "Traffic Police"),
    ("Street Lighting", "lightbulb", "Electricity"),
    ("Water Supply", "droplet", "Water & Drainage"),
    ("Public Safety", "shield-alert", "Public Safety"),
    ("Noise Pollution", "volume-2", "Environment"),
    ("Air Pollution", "wind", "Environment"),
    ("Other", "circle-help", "General Administration"),
)


def seed_id(name: str) -> str:
    """Stable id for a seeded department or category name."""
    return str(uuid.uuid5(_NAMESPACE, name))


def default_departments() -> list[Department]:
    return [
        Department(id=seed_id(f"department:{name}"), name=name, description=description)
        for name, description in _DEPARTMENTS.items()
    ]


def default_categories() -> list[Category]:
    return [
        Category(
            id=seed_id(f"category:{name}"),
            name=name,
            icon=icon,
            department_id=seed_id(f"department:{department}"),
        )
        for name, icon, department in _CATEGORIES
    ]


def seed_directory(store: InMemoryStore) -> InMemoryStore:
    """Load the default departments and categories into *store*."""
    for department in default_departments():
        store.add_department(department)
    for category in default_categories():
        store.add_category(category)
    logger.info(
        "seed.directory_loaded",
        departments=len(_DEPARTMENTS),
        categories=len(_CATEGORIES),
    )
    return store
