"""Bullet-notation parser: recognized page text -> provisional candidates."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import Any, Dict, List, Optional, Tuple

from bujo_capture.date_parsing import (
    build_date,
    format_date,
    parse_concatenated,
    parse_delimited,
    parse_iso,
    parse_month_day,
    parse_relative,
    parse_weekday,
)
from bujo_capture.logging_utils import get_logger
from bujo_capture.models import EntryStatus, EntryType, Priority
from bujo_capture.normalize import collapse_whitespace, deduplicate_preserve_order

logger = get_logger("parser")

Candidate = Dict[str, Any]


@dataclass(frozen=True)
class BulletRule:
    name: str
    pattern: re.Pattern[str]
    type: EntryType
    status: EntryStatus


def _rule(name: str, regex: str, entry_type: EntryType, status: EntryStatus) -> BulletRule:
    return BulletRule(name=name, pattern=re.compile(regex), type=entry_type, status=status)


_OPTIONAL_BULLET = r"\s*[•\-\*]?\s*"

# Evaluated top to bottom; the first match wins. Completion, migration and
# scheduling markers may carry a trailing bullet, so a plain "-" line is
# still claimed by the task rule before the note rule sees it.
BULLET_RULES: Tuple[BulletRule, ...] = (
    _rule("task", r"(?:•\s*|[\-\*]\s+)(.+)", "task", "incomplete"),
    _rule("task_complete", rf"(?:[✓✔]|[xX](?=[\s•\*])){_OPTIONAL_BULLET}(.+)", "task", "complete"),
    _rule("task_migrated", rf"[>→]{_OPTIONAL_BULLET}(.+)", "task", "migrated"),
    _rule("task_scheduled", rf"[<←]{_OPTIONAL_BULLET}(.+)", "task", "scheduled"),
    _rule("event", r"(?:[○◦]\s*|o\s+)(.+)", "event", "incomplete"),
    _rule("note", r"[—–\-]\s+(.+)", "note", "incomplete"),
    _rule("task_cancelled", rf"~{_OPTIONAL_BULLET}(.+)", "task", "cancelled"),
    _rule("inspiration", r"[★☆]\s*(.+)", "inspiration", "incomplete"),
    _rule("research", r"&\s*(.+)", "research", "incomplete"),
    _rule("memory", r"[◇◊]\s*(.+)", "memory", "incomplete"),
)

CONTEXT_PATTERN = re.compile(r"(?<![\w@])@(\w+)")
TAG_PATTERN = re.compile(r"(?<![\w&#])#(\w+)")
PRIORITY_PATTERN = re.compile(r"\s*(!{1,2}|\*+)\s*$")
# Words that imply a context even without an @ sigil.
IMPLICIT_CONTEXTS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("work", re.compile(r"\b(?:work|office)\b", re.IGNORECASE)),
    ("home", re.compile(r"\b(?:home|house)\b", re.IGNORECASE)),
    ("personal", re.compile(r"\b(?:personal|family)\b", re.IGNORECASE)),
)

_MONTH_NAMES = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
DATE_LITERAL_PATTERN = re.compile(
    r"\b\d{4}-\d{2}-\d{2}\b"
    r"|\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b"
    rf"|\b{_MONTH_NAMES}\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b"
    rf"|\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTH_NAMES}(?:,?\s+\d{{4}})?\b",
    re.IGNORECASE,
)
TIME_PATTERN = re.compile(
    r"\b(\d{1,2}):(\d{2})\s*([ap]\.?m\.?)?(?!\w)|\b(\d{1,2})\s*([ap]\.?m\.?)(?!\w)",
    re.IGNORECASE,
)
DAY_HEADER_PATTERN = re.compile(r"(\d{1,2})(?:st|nd|rd|th)?")

_HEADER_PARSERS = (
    parse_iso,
    parse_delimited,
    parse_concatenated,
    parse_relative,
    parse_weekday,
    # Month-day headers stay in the current year.
    partial(parse_month_day, roll_forward=False),
)


@dataclass(slots=True)
class ParseResult:
    """Candidates from one page plus the page-level date, when one was written."""

    candidates: List[Candidate] = field(default_factory=list)
    page_date: Optional[str] = None
    dropped_lines: int = 0


def extract_contexts(text: str) -> List[str]:
    """Explicit @contexts first, then contexts implied by words like "office"."""

    contexts = [value.lower() for value in CONTEXT_PATTERN.findall(text)]
    plain = TAG_PATTERN.sub("", CONTEXT_PATTERN.sub("", text))
    contexts.extend(name for name, pattern in IMPLICIT_CONTEXTS if pattern.search(plain))
    return deduplicate_preserve_order(contexts)


def extract_tags(text: str) -> List[str]:
    return TAG_PATTERN.findall(text)


def extract_priority(text: str) -> Priority:
    """Trailing `*` or `!!` -> high, a single trailing `!` -> medium."""

    match = PRIORITY_PATTERN.search(text)
    if match is None:
        return "none"
    return "medium" if match.group(1) == "!" else "high"


def extract_date_literal(text: str) -> Optional[str]:
    match = DATE_LITERAL_PATTERN.search(text)
    return match.group(0) if match else None


def extract_time_literal(text: str) -> Optional[str]:
    """First clock time in ``text`` as ``HH:MM`` (24h), if any."""

    for match in TIME_PATTERN.finditer(text):
        if match.group(1) is not None:
            hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
        else:
            hours, minutes, meridiem = int(match.group(4)), 0, match.group(5)
        if meridiem:
            if not 1 <= hours <= 12:
                continue
            is_pm = meridiem.lower().startswith("p")
            if is_pm and hours != 12:
                hours += 12
            elif not is_pm and hours == 12:
                hours = 0
        if hours > 23 or minutes > 59:
            continue
        return f"{hours:02d}:{minutes:02d}"
    return None


def strip_sigils(text: str) -> str:
    cleaned = PRIORITY_PATTERN.sub("", text)
    cleaned = CONTEXT_PATTERN.sub("", cleaned)
    cleaned = TAG_PATTERN.sub("", cleaned)
    return collapse_whitespace(cleaned)


class BulletPatternParser:
    """Ordered bullet grammar; lines matching no rule are dropped."""

    def __init__(self, rules: Tuple[BulletRule, ...] = BULLET_RULES) -> None:
        self._rules = rules

    def parse(self, text: str, *, today: date | None = None) -> ParseResult:
        today_value = today or date.today()
        result = ParseResult()
        headers: List[Tuple[int, str]] = []

        for line in _split_lines(text):
            candidate = self.parse_line(line)
            if candidate is not None:
                result.candidates.append(candidate)
                continue
            header = self._parse_date_header(line, today_value)
            if header is not None:
                headers.append((len(result.candidates), header))
                continue
            result.dropped_lines += 1
            logger.debug("Dropped unrecognized line: %r", line)

        if len(headers) == 1:
            result.page_date = headers[0][1]
        elif headers:
            # Several headers split the page into sections; each candidate
            # gets the date of the section it was written under.
            for index, candidate in enumerate(result.candidates):
                section = _section_header(headers, index)
                if section is not None:
                    candidate["date"] = section
        return result

    def parse_line(self, line: str) -> Optional[Candidate]:
        for rule in self._rules:
            match = rule.pattern.fullmatch(line)
            if match is not None:
                return self._build_candidate(rule, match.group(1))
        return None

    def _build_candidate(self, rule: BulletRule, remainder: str) -> Candidate:
        candidate: Candidate = {
            "type": rule.type,
            "status": rule.status,
            "content": strip_sigils(remainder),
            "priority": extract_priority(remainder),
            "tags": extract_tags(remainder),
            "contexts": extract_contexts(remainder),
            "rule": rule.name,
        }
        due = extract_date_literal(remainder)
        if due is not None:
            candidate["dueDate"] = due
        clock = extract_time_literal(remainder)
        if clock is not None:
            candidate["time"] = clock
        return candidate

    @staticmethod
    def _parse_date_header(line: str, today: date) -> Optional[str]:
        text = collapse_whitespace(line.rstrip(":"))
        day_match = DAY_HEADER_PATTERN.fullmatch(text)
        if day_match is not None:
            value = build_date(today.year, today.month, int(day_match.group(1)))
            return format_date(value) if value else None
        for parse in _HEADER_PARSERS:
            value = parse(text, today)
            if value is not None:
                return format_date(value)
        return None


def _split_lines(text: str) -> List[str]:
    if not isinstance(text, str):
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def _section_header(headers: List[Tuple[int, str]], index: int) -> Optional[str]:
    current = None
    for start, header in headers:
        if start <= index:
            current = header
    return current


__all__ = [
    "BulletRule",
    "BULLET_RULES",
    "ParseResult",
    "BulletPatternParser",
    "extract_contexts",
    "extract_tags",
    "extract_date_literal",
    "extract_time_literal",
    "extract_priority",
    "IMPLICIT_CONTEXTS",
    "strip_sigils",
]
