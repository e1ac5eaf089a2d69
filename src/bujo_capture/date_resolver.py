"""Authoritative ``collection_date`` assignment.

Sources are consulted in a fixed order and the first usable one wins:

1. the page-level date handwritten once per page,
2. the entry's own date,
3. a collection date the candidate already carried,
4. the image's estimated journal day, if within 30 days of now,
5. the image's capture time, if within 7 days of now,
6. today.

A source that is missing or unparseable is simply skipped, so resolution
always ends with a date.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Literal, Mapping, Optional
from zoneinfo import ZoneInfo

from bujo_capture.date_parsing import parse_date_value
from bujo_capture.logging_utils import get_logger
from bujo_capture.models import Entry, ImageMetadata
from bujo_capture.normalizer import TIME_KEYS, first_present, parse_clock
from bujo_capture.time_utils import as_local, days_between

logger = get_logger("date_resolver")

DateSource = Literal[
    "page_date",
    "entry_date",
    "collection_date",
    "estimated_journal_date",
    "image_created_at",
    "today",
]

PAGE_DATE_KEYS = ("pageDate", "page_date")
ENTRY_DATE_KEYS = ("date", "entryDate", "entry_date")
COLLECTION_DATE_KEYS = ("collectionDate", "collection_date")


@dataclass(slots=True, frozen=True)
class DateResolution:
    collection_date: date
    source: DateSource


class DateResolver:
    def __init__(
        self,
        *,
        tz: ZoneInfo | None = None,
        estimated_window_days: int = 30,
        created_window_days: int = 7,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tz = tz or ZoneInfo("UTC")
        self._estimated_window_days = estimated_window_days
        self._created_window_days = created_window_days
        self._clock = clock or (lambda: datetime.now(self._tz))

    def resolve(
        self,
        candidate: Mapping[str, Any] | None = None,
        *,
        page_date: Any = None,
        image: ImageMetadata | None = None,
    ) -> DateResolution:
        now = as_local(self._clock(), self._tz)
        today = now.date()
        candidate = candidate if isinstance(candidate, Mapping) else {}

        if page_date is None:
            page_date = first_present(candidate, *PAGE_DATE_KEYS)
        textual_sources = (
            ("page_date", page_date),
            ("entry_date", first_present(candidate, *ENTRY_DATE_KEYS)),
            ("collection_date", first_present(candidate, *COLLECTION_DATE_KEYS)),
        )
        for source, raw in textual_sources:
            if raw is None:
                continue
            value = parse_date_value(raw, today=today)
            if value is not None:
                return DateResolution(value, source)
            logger.debug("Unparseable %s %r skipped", source, raw)

        if image is not None:
            estimated = image.estimated_journal_date
            if estimated is not None and abs((today - estimated).days) <= self._estimated_window_days:
                return DateResolution(estimated, "estimated_journal_date")
            created = as_local(image.created_at, self._tz)
            if days_between(created, now) <= self._created_window_days:
                return DateResolution(created.date(), "image_created_at")

        return DateResolution(today, "today")

    def apply(
        self,
        entry: Entry,
        candidate: Mapping[str, Any] | None = None,
        *,
        page_date: Any = None,
        image: ImageMetadata | None = None,
    ) -> Entry:
        """Copy of ``entry`` with its final collection date.

        A clock time written without a date becomes a due time on the
        resolved day.
        """

        resolution = self.resolve(candidate, page_date=page_date, image=image)
        update: dict[str, Any] = {"collection_date": resolution.collection_date}
        if entry.due_date is None and isinstance(candidate, Mapping):
            clock = parse_clock(first_present(candidate, *TIME_KEYS))
            if clock is not None:
                update["due_date"] = datetime.combine(resolution.collection_date, clock, tzinfo=self._tz)
        return entry.model_copy(update=update)


def resolve_collection_date(
    candidate: Mapping[str, Any] | None = None,
    *,
    page_date: Any = None,
    image: ImageMetadata | None = None,
    now: Optional[datetime] = None,
    tz: ZoneInfo | None = None,
) -> date:
    """Functional shortcut around :class:`DateResolver` with default windows."""

    zone = tz or ZoneInfo("UTC")
    clock = (lambda: now) if now is not None else None
    resolver = DateResolver(tz=zone, clock=clock)
    return resolver.resolve(candidate, page_date=page_date, image=image).collection_date


__all__ = [
    "DateSource",
    "DateResolution",
    "DateResolver",
    "resolve_collection_date",
    "PAGE_DATE_KEYS",
    "ENTRY_DATE_KEYS",
    "COLLECTION_DATE_KEYS",
]
