from __future__ import annotations

import re
import unicodedata
from typing import Any, Iterable, List

MULTISPACE = re.compile(r"\s+")
# Bullet glyphs recognition tends to leave at the start of content.
LEADING_GLYPHS = re.compile(
    r"^(?:(?:[•·∙⋅‧✓✔×>→➜<←⬅~○◦Ø\-–—−!*★☆&◇◊]+|[xXo](?=\s))\s*)+"
)
SIGIL_SPLIT = re.compile(r"[\s,;|]+")
DELIMITED_SPLIT = re.compile(r"[,;|\n]+")
LIST_MARKER = re.compile(r"^(?:[-*•·◦○–—]+|\d+[.)])\s*")
QUOTE_TABLE = str.maketrans(
    {
        "“": '"',
        "”": '"',
        "„": '"',
        "«": '"',
        "»": '"',
        "‘": "'",
        "’": "'",
        "‚": "'",
        "…": "...",
    }
)


def collapse_whitespace(value: str) -> str:
    return MULTISPACE.sub(" ", value).strip()


def deduplicate_preserve_order(values: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def strip_bullet_glyphs(value: str) -> str:
    return LEADING_GLYPHS.sub("", value.strip())


def clean_content(value: Any) -> str:
    """Canonical entry text: no leading glyphs, single spaces, plain quotes."""

    if not isinstance(value, str):
        return ""
    cleaned = unicodedata.normalize("NFC", value)
    cleaned = strip_bullet_glyphs(cleaned)
    cleaned = collapse_whitespace(cleaned)
    cleaned = cleaned.translate(QUOTE_TABLE)
    if cleaned and cleaned[0].islower():
        cleaned = cleaned[0].upper() + cleaned[1:]
    return cleaned.strip()


def normalize_sigil_values(value: Any, sigil: str) -> List[str]:
    """Lowercase, sigil-free, deduplicated tags or contexts.

    Accepts a list/tuple/set of strings or one delimited string. Applying it
    to its own output returns the same list.
    """

    if isinstance(value, str):
        items: Iterable[Any] = SIGIL_SPLIT.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        return []

    normalized: List[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        cleaned = item.strip().lstrip(sigil).strip().lower()
        if cleaned:
            normalized.append(cleaned)
    return deduplicate_preserve_order(normalized)


def split_delimited(value: Any) -> List[str]:
    """Split a list or a delimited string into clean, marker-free items."""

    if isinstance(value, str):
        items: Iterable[Any] = DELIMITED_SPLIT.split(value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []

    result: List[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        cleaned = collapse_whitespace(LIST_MARKER.sub("", item.strip()))
        if cleaned:
            result.append(cleaned)
    return result


__all__ = [
    "collapse_whitespace",
    "deduplicate_preserve_order",
    "strip_bullet_glyphs",
    "clean_content",
    "normalize_sigil_values",
    "split_delimited",
]
