"""Data models shared across the project."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EntryType = Literal["task", "event", "note", "inspiration", "research", "memory", "custom"]
EntryStatus = Literal["incomplete", "complete", "migrated", "scheduled", "cancelled"]
Priority = Literal["none", "low", "medium", "high"]
Collection = Literal["daily", "monthly", "future", "custom"]
Mood = Literal["excellent", "good", "neutral", "poor"]
ImageSource = Literal["camera", "gallery", "unknown"]
Provenance = Literal["parser", "gpt-vision", "mistral", "ocr-space", "cloud-vision", "manual"]

ENTRY_TYPES: tuple[EntryType, ...] = (
    "task",
    "event",
    "note",
    "inspiration",
    "research",
    "memory",
    "custom",
)
ENTRY_STATUSES: tuple[EntryStatus, ...] = ("incomplete", "complete", "migrated", "scheduled", "cancelled")
PRIORITIES: tuple[Priority, ...] = ("none", "low", "medium", "high")
COLLECTIONS: tuple[Collection, ...] = ("daily", "monthly", "future", "custom")
MOODS: tuple[Mood, ...] = ("excellent", "good", "neutral", "poor")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Entry(_CamelModel):
    """Canonical bullet journal entry handed to the store."""

    id: str = Field(..., min_length=1)
    type: EntryType = "task"
    content: str = ""
    status: EntryStatus = "incomplete"
    priority: Priority = "none"
    created_at: datetime
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    contexts: List[str] = Field(default_factory=list)
    collection: Collection = "daily"
    collection_date: date
    ocr_confidence: float = Field(0.9, ge=0.0, le=1.0)
    mood: Optional[Mood] = None
    gratitude: Optional[List[str]] = None
    source_image: Optional[str] = None


class Location(BaseModel):
    latitude: float
    longitude: float


class ImageMetadata(_CamelModel):
    """Best-effort facts about a scanned page image."""

    uri: str
    created_at: datetime
    modified_at: datetime
    file_size: int = 0
    width: int = 0
    height: int = 0
    format: str = "unknown"
    source: ImageSource = "unknown"
    location: Optional[Location] = None
    estimated_journal_date: Optional[date] = None


__all__ = [
    "EntryType",
    "EntryStatus",
    "Priority",
    "Collection",
    "Mood",
    "ImageSource",
    "Provenance",
    "ENTRY_TYPES",
    "ENTRY_STATUSES",
    "PRIORITIES",
    "COLLECTIONS",
    "MOODS",
    "Entry",
    "Location",
    "ImageMetadata",
]
