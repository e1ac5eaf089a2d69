"""Lookup tables mapping free-text provider values onto the closed enums."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, Mapping, Optional, Tuple, TypeVar

from bujo_capture.models import Collection, EntryStatus, EntryType, Mood, Priority

T = TypeVar("T")


@dataclass(frozen=True)
class SynonymMapper(Generic[T]):
    """Case-insensitive raw value -> canonical value, falling back to ``default``."""

    synonyms: Mapping[T, Tuple[str, ...]]
    default: T
    _lookup: Dict[str, T] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lookup: Dict[str, T] = {}
        for canonical, words in self.synonyms.items():
            lookup[str(canonical)] = canonical
            for word in words:
                lookup.setdefault(_key(word), canonical)
        object.__setattr__(self, "_lookup", lookup)

    def get(self, raw: Any) -> Optional[T]:
        """Return the canonical value or None when ``raw`` is not recognized."""

        if not isinstance(raw, str):
            return None
        return self._lookup.get(_key(raw))

    def __call__(self, raw: Any) -> T:
        value = self.get(raw)
        return self.default if value is None else value


def _key(raw: str) -> str:
    return re.sub(r"[\s_\-]+", " ", raw.strip().lower())


ENTRY_TYPE: SynonymMapper[EntryType] = SynonymMapper(
    {
        "task": ("todo", "to do", "to-do", "action", "action item", "chore", "bullet"),
        "event": ("appointment", "meeting", "meet", "calendar", "occasion", "circle"),
        "note": ("idea", "thought", "observation", "info", "information", "comment", "dash"),
        "inspiration": ("inspire", "insight", "star", "important"),
        "research": ("investigate", "investigation", "explore", "look up", "lookup", "study"),
        "memory": ("memories", "gratitude", "grateful", "reflection", "journal", "diamond"),
        "custom": ("other", "signifier"),
    },
    default="task",
)

ENTRY_STATUS: SynonymMapper[EntryStatus] = SynonymMapper(
    {
        "incomplete": ("pending", "todo", "to do", "open", "in progress", "not started", "new"),
        "complete": ("completed", "done", "finished", "checked", "closed", "x"),
        "migrated": ("moved", "transferred", "forwarded", "carried over"),
        "scheduled": ("planned", "future", "deferred", "later"),
        "cancelled": ("canceled", "irrelevant", "dropped", "struck", "abandoned"),
    },
    default="incomplete",
)

PRIORITY: SynonymMapper[Priority] = SynonymMapper(
    {
        "high": ("important", "urgent", "critical", "priority", "asap", "top", "*", "!!"),
        "medium": ("med", "moderate", "mid", "!"),
        "low": ("minor", "someday", "trivial"),
        "none": ("normal", "default", "regular", "no"),
    },
    default="none",
)

COLLECTION: SynonymMapper[Collection] = SynonymMapper(
    {
        "daily": ("day", "today", "daily log"),
        "monthly": ("month", "monthly log"),
        "future": ("future log", "someday"),
        "custom": ("collection", "project", "list"),
    },
    default="daily",
)

MOOD: SynonymMapper[Optional[Mood]] = SynonymMapper(
    {
        "excellent": ("great", "amazing", "fantastic", "wonderful", "awesome", "ecstatic"),
        "good": ("happy", "positive", "nice", "content", "pleasant"),
        "neutral": ("okay", "ok", "meh", "average", "so so", "fine"),
        "poor": ("bad", "sad", "terrible", "awful", "negative", "low", "down"),
    },
    default=None,
)

_MOOD_KEYWORDS: Tuple[Tuple[Mood, Tuple[str, ...]], ...] = (
    (
        "excellent",
        ("amazing", "fantastic", "wonderful", "incredible", "awesome", "thrilled", "ecstatic", "best day"),
    ),
    ("good", ("good", "happy", "nice", "glad", "grateful", "thankful", "enjoyed", "pleasant", "fun")),
    ("neutral", ("okay", "ok", "fine", "meh", "alright", "so-so", "average", "normal day")),
    (
        "poor",
        ("bad", "sad", "terrible", "awful", "stressed", "tired", "angry", "upset", "anxious", "worst"),
    ),
)

_MOOD_EMOJI: Tuple[Tuple[Mood, Tuple[str, ...]], ...] = (
    ("excellent", ("😄", "😁", "🤩", "🥳", "😍", "🎉")),
    ("good", ("😊", "🙂", "😀", "☺", "👍", "❤")),
    ("neutral", ("😐", "😶", "🤷", "😑")),
    ("poor", ("😢", "😞", "😔", "😠", "😭", "👎", "😩")),
)


def _keyword_pattern(words: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(word) for word in words)
    return re.compile(rf"(?<![\w-])(?:{alternatives})(?![\w-])", re.IGNORECASE)


_MOOD_PATTERNS = tuple((mood, _keyword_pattern(words)) for mood, words in _MOOD_KEYWORDS)


def detect_mood(text: Any) -> Optional[Mood]:
    """Keyword scan first, then emoji scan; None when the text carries no signal."""

    if not isinstance(text, str) or not text:
        return None
    for mood, pattern in _MOOD_PATTERNS:
        if pattern.search(text):
            return mood
    for mood, symbols in _MOOD_EMOJI:
        if any(symbol in text for symbol in symbols):
            return mood
    return None


__all__ = [
    "SynonymMapper",
    "ENTRY_TYPE",
    "ENTRY_STATUS",
    "PRIORITY",
    "COLLECTION",
    "MOOD",
    "detect_mood",
]
