"""
Site document model.

Entity records, the SiteDocument aggregate, the seed document and the
merge applied when a stored document is loaded.
"""
from .entities import (
    CalendarEvent,
    Download,
    Enrollment,
    EnrollmentStatus,
    FormSubmission,
    NewsItem,
    OuderwerkgroepActivity,
    PageConfig,
    PageType,
    PhotoAlbum,
    SiteConfig,
    SubmissionStatus,
    TeamMember,
)
from .document import COLLECTIONS, SiteDocument
from .defaults import default_document, default_document_dict, merge_over_seed

__all__ = [
    "CalendarEvent",
    "Download",
    "Enrollment",
    "EnrollmentStatus",
    "FormSubmission",
    "NewsItem",
    "OuderwerkgroepActivity",
    "PageConfig",
    "PageType",
    "PhotoAlbum",
    "SiteConfig",
    "SubmissionStatus",
    "TeamMember",
    "COLLECTIONS",
    "SiteDocument",
    "default_document",
    "default_document_dict",
    "merge_over_seed",
]
