"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the
FastAPI application only needs to include a single router.

Includes:
    * Core: health, session and profile
    * Complaints: directory, submission, own complaints, disputes
    * Public: community feed and municipal office lookup
    * Admin: review queue, status changes, stats, CSV export
    * Advisory: AI categorization, enhancement, image pre-fill, chat
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import admin, advisory, community, complaints, health, offices, profile

api_router = APIRouter(prefix="/api/v1")

# -- Core sub-routers ------------------------------------------------------
api_router.include_router(health.router)
api_router.include_router(profile.router)
api_router.include_router(complaints.router)
api_router.include_router(community.router)
api_router.include_router(offices.router)

# -- Admin and advisory ----------------------------------------------------
api_router.include_router(admin.router)
api_router.include_router(advisory.router)
