"""
Data schemas for G2B bid announcements.

This module defines Pydantic models for announcements extracted from the
results table, the rows persisted in the store, and the outcome of a
scrape run.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum


UNKNOWN_AGENCY = "Unknown"


class ScrapeStatus(str, Enum):
    """Outcome of a single scrape."""
    COMPLETED = "completed"
    NAVIGATION_FAILED = "navigation_failed"
    ERROR = "error"


class Announcement(BaseModel):
    """
    A single bid announcement read from the results table.

    Instances are created fresh on every extraction pass and are never
    mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Bid number from the link, or title_date fallback")
    title: str = Field(..., description="Announcement title (공고명)")
    link: str = Field(..., description="Absolute URL of the detail page")
    date: str = Field("", description="Posting date as rendered (YYYY/MM/DD...)")
    agency: str = Field(UNKNOWN_AGENCY, description="Demanding agency (수요기관)")
    status: str = Field("Open", description="Always 'Open' at extraction time")

    @field_validator('title', 'date', 'agency', mode='before')
    @classmethod
    def strip_text(cls, v):
        """Trim rendered cell text."""
        if v is None:
            return ""
        return str(v).strip()

    def to_record(self) -> "AnnouncementRecord":
        """Build the row inserted into the store for a newly seen announcement."""
        return AnnouncementRecord(**self.model_dump(), is_sent=False)


class AnnouncementRecord(BaseModel):
    """Persisted row: announcement fields plus the notification flag."""

    id: str
    title: str
    link: str
    date: str = ""
    agency: str = UNKNOWN_AGENCY
    status: str = "Open"
    is_sent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON body sent to the store."""
        return self.model_dump(mode='json')


class ScrapeResult(BaseModel):
    """
    Announcements collected by one scrape, with the navigation outcome.

    An empty ``announcements`` list is ambiguous on its own; ``status``
    tells a legitimately empty result apart from a failed navigation.
    """

    announcements: List[Announcement] = Field(default_factory=list)
    status: ScrapeStatus = ScrapeStatus.COMPLETED
    final_state: Optional[str] = Field(None, description="Last navigation state reached")
    degraded_steps: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def complete(self, status: Optional[ScrapeStatus] = None) -> "ScrapeResult":
        """Mark the scrape as finished."""
        if status is not None:
            self.status = status
        self.completed_at = datetime.now()
        return self

    @property
    def total_count(self) -> int:
        return len(self.announcements)


class RunReport(BaseModel):
    """Counters for one monitoring run."""

    status: ScrapeStatus = ScrapeStatus.COMPLETED
    extracted: int = 0
    new: int = 0
    skipped_errors: int = 0
    notified: bool = False
    marked_sent: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')
