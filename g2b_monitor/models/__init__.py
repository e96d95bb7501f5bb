"""Data models and schemas for the G2B bid monitor."""

from .schema import (
    Announcement,
    AnnouncementRecord,
    RunReport,
    ScrapeResult,
    ScrapeStatus,
    UNKNOWN_AGENCY,
)

__all__ = [
    "Announcement",
    "AnnouncementRecord",
    "RunReport",
    "ScrapeResult",
    "ScrapeStatus",
    "UNKNOWN_AGENCY",
]
