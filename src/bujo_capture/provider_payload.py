"""Reading structured entries out of recognition-provider responses."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from bujo_capture.date_parsing import is_null_date
from bujo_capture.logging_utils import get_logger

logger = get_logger("provider_payload")

ENTRY_LIST_KEYS = ("entries", "parsedEntries", "parsed_entries", "items")
PAGE_DATE_KEYS = ("page_date", "pageDate")


class ProviderPayloadError(RuntimeError):
    """Raised when a provider response holds no usable JSON."""


@dataclass(slots=True)
class ProviderPayload:
    candidates: List[Dict[str, Any]] = field(default_factory=list)
    page_date: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _extract_json_text(content: str) -> str:
    """Some models wrap JSON with stray characters; try to isolate the first full object or list."""

    text = content.strip()
    length = len(text)
    pairs = {"{": "}", "[": "]"}
    for start in range(length):
        opener = text[start]
        if opener not in pairs:
            continue
        closer = pairs[opener]
        depth = 0
        in_string = False
        escaped = False
        for end in range(start, length):
            char = text[end]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start : end + 1]
        # unmatched brackets, try next start
    return text


def _content_text(content: Any) -> str:
    if isinstance(content, list):
        # Some providers may return a list of content parts.
        texts = (part.get("text") for part in content if isinstance(part, Mapping))
        return "".join(text for text in texts if isinstance(text, str))
    if isinstance(content, str):
        return content
    raise ProviderPayloadError(f"Unsupported content type: {type(content).__name__}")


def _decode(text: str) -> Any:
    try:
        return json.loads(_extract_json_text(text))
    except json.JSONDecodeError as exc:
        raise ProviderPayloadError(f"Provider returned invalid JSON: {exc}\nContent: {text}") from exc


def _unwrap_completion(payload: Mapping[str, Any]) -> Any:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProviderPayloadError("Provider returned no choices")
    message = choices[0].get("message") if isinstance(choices[0], Mapping) else None
    content = message.get("content") if isinstance(message, Mapping) else None
    if not content:
        raise ProviderPayloadError("Provider response content is empty")
    return _decode(_content_text(content))


def _page_date(*sources: Any) -> Optional[str]:
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        for key in PAGE_DATE_KEYS:
            value = source.get(key)
            if not is_null_date(value):
                return str(value).strip()
    return None


def _candidates(items: Any) -> List[Dict[str, Any]]:
    if not isinstance(items, list):
        return []
    candidates = [dict(item) for item in items if isinstance(item, Mapping)]
    skipped = len(items) - len(candidates)
    if skipped:
        logger.warning("Skipped %s non-object provider entries", skipped)
    return candidates


def read_provider_payload(payload: Any) -> ProviderPayload:
    """Accept a decoded payload, a chat-completion response or raw response text.

    Shapes understood: ``{"entries": [...], "metadata": {"page_date": ...}}``,
    a bare list of entry objects, or a single entry object.
    """

    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        payload = _decode(payload)
    if isinstance(payload, Mapping) and "choices" in payload:
        payload = _unwrap_completion(payload)

    if isinstance(payload, list):
        return ProviderPayload(candidates=_candidates(payload))

    if not isinstance(payload, Mapping):
        raise ProviderPayloadError(f"Unsupported payload type: {type(payload).__name__}")

    metadata = payload.get("metadata")
    metadata = dict(metadata) if isinstance(metadata, Mapping) else {}
    page_date = _page_date(metadata, payload)

    for key in ENTRY_LIST_KEYS:
        if key in payload:
            return ProviderPayload(
                candidates=_candidates(payload[key]),
                page_date=page_date,
                metadata=metadata,
            )

    if "content" in payload:
        return ProviderPayload(candidates=[dict(payload)], page_date=page_date, metadata=metadata)

    logger.warning("Provider payload carries no entries: keys=%s", list(payload))
    return ProviderPayload(page_date=page_date, metadata=metadata)


__all__ = ["ProviderPayload", "ProviderPayloadError", "read_provider_payload"]
