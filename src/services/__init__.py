"""EchoCity service layer -- store, session, lifecycle, advisory, analytics.

Exports are eager for services with no cloud SDK dependency.  The
Gemini service is imported lazily so that ``import src.services``
succeeds where the Vertex AI SDK is missing or broken; callers then run
with AI advisory disabled.
"""

from __future__ import annotations

from src.services.advisory import AdvisoryService, gate_suggestion
from src.services.cache import CacheManager, InMemoryCacheBackend
from src.services.complaints import ComplaintService, ImageUpload
from src.services.directory import CategoryDirectory, match_category
from src.services.errors import (
    AuthenticationError,
    AuthorizationError,
    DuplicateComplaintError,
    EchoCityError,
    IllegalTransitionError,
    NotFoundError,
    RemoteServiceError,
    StaleRecordError,
    ValidationError,
)
from src.services.lifecycle import TRANSITIONS, ComplaintLifecycleController, allowed_targets
from src.services.session import SessionResolver
from src.services.store import AuthProvider, FileStorage, InMemoryStore, RecordStore
from src.services.supabase import SupabaseClient

# We catch BaseException because some GCP native extension failures
# raise pyo3_runtime.PanicException which inherits from BaseException.
try:
    from src.services.llm import ECHO_SYSTEM_PROMPT, LLMResult, LLMService
except BaseException:  # pragma: no cover  # noqa: BLE001
    ECHO_SYSTEM_PROMPT = None  # type: ignore[assignment]
    LLMResult = None  # type: ignore[assignment,misc]
    LLMService = None  # type: ignore[assignment,misc]

__all__ = [
    "TRANSITIONS",
    "AdvisoryService",
    "AuthProvider",
    "AuthenticationError",
    "AuthorizationError",
    "CacheManager",
    "CategoryDirectory",
    "ComplaintLifecycleController",
    "ComplaintService",
    "DuplicateComplaintError",
    "ECHO_SYSTEM_PROMPT",
    "EchoCityError",
    "FileStorage",
    "IllegalTransitionError",
    "ImageUpload",
    "InMemoryCacheBackend",
    "InMemoryStore",
    "LLMResult",
    "LLMService",
    "NotFoundError",
    "RecordStore",
    "RemoteServiceError",
    "SessionResolver",
    "StaleRecordError",
    "SupabaseClient",
    "ValidationError",
    "allowed_targets",
    "gate_suggestion",
    "match_category",
]
