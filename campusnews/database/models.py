"""
CampusNews Data Models
======================

Pydantic data models for the persisted schema plus the dataclass used to
report one ingestion run. The serving layer reads these same tables.
"""

from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass
from pydantic import BaseModel, Field, field_validator


class StoredFile(BaseModel):
    """Deduplicated reference to externally hosted media.

    ``name`` is derived from the origin URL, so looking up by name is the
    dedup key. The download worker flips ``downloaded`` once the bytes exist.
    """
    id: Optional[int] = Field(default=None, description="Database primary key")
    name: str = Field(..., min_length=1, description="Deterministic file name")
    path: str = Field(..., min_length=1, description="Storage category path")
    url: Optional[str] = Field(default=None, description="Origin URL of the media")
    downloaded: bool = Field(default=False, description="Whether the bytes are on disk")

    def __str__(self) -> str:
        return f"StoredFile({self.path}{self.name})"


class NewsSource(BaseModel):
    """Configured feed origin. Read-only to ingestion."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    title: str = Field(..., min_length=1, max_length=255, description="Display title")
    url: Optional[str] = Field(default=None, description="Feed URL, sources without one are skipped")
    hook: Optional[str] = Field(default=None, description="Name of the source specific transform")
    icon: Optional[int] = Field(default=None, description="Icon file ID")

    @field_validator('url', 'hook')
    @classmethod
    def empty_to_none(cls, v):
        """Treat blank strings as absent."""
        if v is not None and not v.strip():
            return None
        return v

    def __str__(self) -> str:
        return f"NewsSource({self.title}:{self.id})"


class News(BaseModel):
    """One ingested feed item, unique per (source_id, link)."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    source_id: int = Field(..., description="Owning news source")
    date: datetime = Field(..., description="Publication time reported by the feed")
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Ingestion time")
    title: str = Field(default="", description="Item title after transforms")
    description: str = Field(default="", description="Sanitized plain text description")
    link: str = Field(..., min_length=1, description="Canonical link, the dedup key")
    image_url: Optional[str] = Field(default=None, description="Origin URL of the picked image")
    file_id: Optional[int] = Field(default=None, description="Registered image file")

    def __str__(self) -> str:
        return f"News({self.title[:50]}...)"


@dataclass
class IngestionResult:
    """Outcome of ingesting one news source."""
    source_id: Optional[int]
    skipped: bool = False
    success: bool = True
    fetched_items: int = 0
    skipped_items: int = 0
    new_entries: int = 0
    images_registered: int = 0
    image_failures: int = 0
    purged_entries: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
