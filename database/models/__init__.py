from database.models.company import Company
from database.models.profile import (
    MemoResponse,
    ProfileEnrichment,
    ProfileSection,
    ResponseSource,
    SECTION_LABELS,
)

__all__ = [
    "Company",
    "MemoResponse",
    "ProfileEnrichment",
    "ProfileSection",
    "ResponseSource",
    "SECTION_LABELS",
]
