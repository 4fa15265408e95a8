"""Accessors for the services the lifespan stores on ``app.state``."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from src.services.advisory import AdvisoryService
from src.services.complaints import ComplaintService
from src.services.directory import CategoryDirectory
from src.services.errors import RemoteServiceError
from src.services.lifecycle import ComplaintLifecycleController
from src.services.store import RecordStore


def _state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RemoteServiceError(f"The {name.replace('_', ' ')} service is not available.")
    return service


def get_store(request: Request) -> RecordStore:
    return _state(request, "store")


def get_directory(request: Request) -> CategoryDirectory:
    return _state(request, "directory")


def get_complaints(request: Request) -> ComplaintService:
    return _state(request, "complaints")


def get_lifecycle(request: Request) -> ComplaintLifecycleController:
    return _state(request, "lifecycle")


def get_advisory(request: Request) -> AdvisoryService:
    return _state(request, "advisory")
