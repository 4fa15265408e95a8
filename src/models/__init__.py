from src.models.advisory import (
    AnalyzeResult,
    CategoryMatch,
    CategorySuggestion,
    ExtractedComplaint,
    ImageAnalysis,
)
from src.models.complaint import (
    Category,
    Complaint,
    ComplaintDraft,
    ComplaintEdit,
    ComplaintView,
    Department,
)
from src.models.enums import ActorKind, ComplaintPriority, ComplaintStatus, UserRole
from src.models.office import MunicipalOffice
from src.models.profile import Identity, Profile, ProfileUpdate, SessionContext

__all__ = [
    "ActorKind",
    "AnalyzeResult",
    "Category",
    "CategoryMatch",
    "CategorySuggestion",
    "Complaint",
    "ComplaintDraft",
    "ComplaintEdit",
    "ComplaintPriority",
    "ComplaintStatus",
    "ComplaintView",
    "Department",
    "ExtractedComplaint",
    "Identity",
    "ImageAnalysis",
    "MunicipalOffice",
    "Profile",
    "ProfileUpdate",
    "SessionContext",
    "UserRole",
]
