"""Canonicalization of parser and provider candidates into ``Entry`` objects."""
from __future__ import annotations

import math
import secrets
import string
from datetime import date, datetime, time
from typing import Any, Callable, List, Mapping, Optional, Set
from zoneinfo import ZoneInfo

from bujo_capture import mappers
from bujo_capture.date_parsing import is_null_date, parse_date_value
from bujo_capture.logging_utils import get_logger
from bujo_capture.models import Entry, Mood, Provenance
from bujo_capture.normalize import clean_content, normalize_sigil_values, split_delimited

logger = get_logger("normalizer")

DEFAULT_CONFIDENCE = 0.9
_ID_ALPHABET = string.ascii_lowercase + string.digits
CONFIDENCE_KEYS = ("confidence", "ocrConfidence", "ocr_confidence")
TIME_KEYS = ("time", "startTime", "start_time")
DUE_KEYS = ("dueDate", "due_date", "due")
CREATED_KEYS = ("createdAt", "created_at")


def first_present(candidate: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key holding something other than a null placeholder."""

    for key in keys:
        value = candidate.get(key)
        if not is_null_date(value):
            return value
    return None


class EntryNormalizer:
    """Turns any candidate mapping into a well-formed ``Entry``; never raises.

    One instance normalizes one batch so generated ids stay unique within it.
    """

    def __init__(
        self,
        *,
        provenance: Provenance = "parser",
        default_confidence: float = DEFAULT_CONFIDENCE,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.provenance = provenance
        self.default_confidence = _clamp_confidence(default_confidence, DEFAULT_CONFIDENCE)
        self._tz = tz or ZoneInfo("UTC")
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._issued_ids: Set[str] = set()

    def normalize_many(self, candidates: Any) -> List[Entry]:
        if isinstance(candidates, Mapping):
            candidates = [candidates]
        if not isinstance(candidates, (list, tuple)):
            return []
        return [self.normalize(candidate) for candidate in candidates]

    def normalize(self, candidate: Any) -> Entry:
        if not isinstance(candidate, Mapping):
            logger.debug("Non-mapping candidate replaced by an empty one: %r", candidate)
            candidate = {}

        now = self._clock()
        today = now.date()
        content = clean_content(candidate.get("content"))
        entry_type = mappers.ENTRY_TYPE(candidate.get("type"))

        return Entry(
            id=self._entry_id(candidate.get("id"), now),
            type=entry_type,
            content=content,
            status=mappers.ENTRY_STATUS(candidate.get("status")),
            priority=mappers.PRIORITY(candidate.get("priority")),
            created_at=self._created_at(candidate, now),
            due_date=self._due_date(candidate, today),
            tags=normalize_sigil_values(candidate.get("tags"), "#"),
            contexts=normalize_sigil_values(candidate.get("contexts"), "@"),
            collection=mappers.COLLECTION(candidate.get("collection")),
            collection_date=today,
            ocr_confidence=self._confidence(candidate),
            mood=self._mood(candidate, content),
            gratitude=self._gratitude(candidate),
            source_image=_optional_str(first_present(candidate, "sourceImage", "source_image")),
        )

    def _entry_id(self, raw: Any, now: datetime) -> str:
        if isinstance(raw, (str, int)) and not isinstance(raw, bool):
            value = str(raw).strip()
            if value and value not in self._issued_ids:
                self._issued_ids.add(value)
                return value
        stamp = int(now.timestamp() * 1000)
        while True:
            suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
            value = f"{self.provenance}-{stamp}-{suffix}"
            if value not in self._issued_ids:
                self._issued_ids.add(value)
                return value

    def _created_at(self, candidate: Mapping[str, Any], now: datetime) -> datetime:
        raw = first_present(candidate, *CREATED_KEYS)
        if isinstance(raw, datetime):
            return raw if raw.tzinfo else raw.replace(tzinfo=self._tz)
        if isinstance(raw, str):
            try:
                parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
            except ValueError:
                return now
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=self._tz)
        return now

    def _due_date(self, candidate: Mapping[str, Any], today: date) -> Optional[datetime]:
        raw_due = first_present(candidate, *DUE_KEYS)
        clock = parse_clock(first_present(candidate, *TIME_KEYS))

        if isinstance(raw_due, datetime):
            return raw_due if raw_due.tzinfo else raw_due.replace(tzinfo=self._tz)
        due_day = parse_date_value(raw_due, today=today)
        if due_day is None and clock is not None:
            due_day = parse_date_value(candidate.get("date"), today=today)
        if due_day is None:
            return None
        return datetime.combine(due_day, clock or time(0, 0), tzinfo=self._tz)

    def _confidence(self, candidate: Mapping[str, Any]) -> float:
        for key in CONFIDENCE_KEYS:
            value = candidate.get(key)
            if _is_number(value):
                return _clamp_confidence(value, self.default_confidence)
        return self.default_confidence

    @staticmethod
    def _mood(candidate: Mapping[str, Any], content: str) -> Optional[Mood]:
        explicit = mappers.MOOD.get(candidate.get("mood"))
        if explicit is not None:
            return explicit
        return mappers.detect_mood(content)

    @staticmethod
    def _gratitude(candidate: Mapping[str, Any]) -> Optional[List[str]]:
        raw = candidate.get("gratitude")
        if raw is None:
            return None
        items = split_delimited(raw)
        return items or None


def parse_clock(value: Any) -> Optional[time]:
    """``HH:MM`` (optionally with seconds) -> ``time``; anything else -> None."""

    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        return None


def validate_entry(entry: Entry) -> bool:
    """True when the entry carries every required field and some content."""

    return bool(
        entry.id
        and entry.type
        and entry.content
        and entry.status
        and entry.priority
        and entry.created_at
        and entry.collection
        and entry.collection_date
        and isinstance(entry.tags, list)
        and isinstance(entry.contexts, list)
    )


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _clamp_confidence(value: Any, fallback: float) -> float:
    if not _is_number(value):
        return fallback
    return min(1.0, max(0.0, float(value)))


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = [
    "EntryNormalizer",
    "first_present",
    "parse_clock",
    "validate_entry",
    "DEFAULT_CONFIDENCE",
    "TIME_KEYS",
]
