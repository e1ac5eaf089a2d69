"""High-level pipeline utilities: recognized page -> canonical entries."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

from bujo_capture.config import Settings, get_settings
from bujo_capture.date_parsing import format_date
from bujo_capture.date_resolver import DateResolver
from bujo_capture.image_metadata import (
    ImageMetadataEstimator,
    JournalDayPolicy,
    PhotoLibrary,
    unknown_metadata,
)
from bujo_capture.logging_utils import get_logger, log_event
from bujo_capture.models import Entry, ImageMetadata, Provenance
from bujo_capture.normalizer import EntryNormalizer, validate_entry
from bujo_capture.parser import BulletPatternParser
from bujo_capture.provider_payload import ProviderPayloadError, read_provider_payload
from bujo_capture.time_utils import as_local, get_timezone

logger = get_logger("pipeline")


@dataclass(slots=True)
class PipelineResult:
    entries: List[Entry]
    provenance: str
    page_date: str | None = None
    image_metadata: ImageMetadata | None = None
    dropped: int = 0
    error: str | None = None


@dataclass(slots=True)
class PageInput:
    """One scanned page: either raw recognized text or a provider payload."""

    text: str | None = None
    payload: Any = None
    image_path: str | None = None
    provenance: Provenance = "parser"


@dataclass(slots=True)
class PipelineContext:
    settings: Settings
    clock: Callable[[], datetime]
    estimator: ImageMetadataEstimator
    semaphore: asyncio.Semaphore


def build_context(
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
    photo_library: PhotoLibrary | None = None,
) -> PipelineContext:
    settings = settings or get_settings()
    tz = get_timezone(settings.timezone)
    if now is not None:
        fixed = as_local(now, tz)
        clock: Callable[[], datetime] = lambda: fixed
    else:
        clock = lambda: datetime.now(tz)
    policy = JournalDayPolicy(
        evening_cutoff_hour=settings.evening_cutoff_hour,
        morning_cutoff_hour=settings.morning_cutoff_hour,
        morning_rule_first=settings.morning_rule_first,
    )
    estimator = ImageMetadataEstimator(
        tz=tz,
        photo_library=photo_library,
        policy=policy,
        filename_window_days=settings.filename_date_window_days,
        clock=clock,
    )
    return PipelineContext(
        settings=settings,
        clock=clock,
        estimator=estimator,
        semaphore=asyncio.Semaphore(settings.metadata_concurrency),
    )


async def lookup_image_metadata(image_path: str | None, context: PipelineContext) -> ImageMetadata | None:
    """Bounded, time-limited metadata lookup; a timeout yields unknown metadata."""

    if not image_path:
        return None
    async with context.semaphore:
        try:
            return await asyncio.wait_for(
                context.estimator.extract(image_path),
                timeout=context.settings.metadata_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Metadata lookup timed out for %s", image_path)
            return unknown_metadata(image_path, context.clock())


def finalize_candidates(
    candidates: Sequence[Mapping[str, Any]],
    *,
    provenance: str,
    context: PipelineContext,
    page_date: str | None = None,
    image_metadata: ImageMetadata | None = None,
) -> PipelineResult:
    """Normalize every candidate, resolve its date and drop empty entries."""

    settings = context.settings
    tz = get_timezone(settings.timezone)
    normalizer = EntryNormalizer(
        provenance=provenance,
        default_confidence=settings.default_confidence,
        tz=tz,
        clock=context.clock,
    )
    resolver = DateResolver(
        tz=tz,
        estimated_window_days=settings.estimated_date_window_days,
        created_window_days=settings.created_at_window_days,
        clock=context.clock,
    )

    entries: List[Entry] = []
    dropped = 0
    for candidate in candidates:
        entry = normalizer.normalize(candidate)
        entry = resolver.apply(entry, candidate, page_date=page_date, image=image_metadata)
        if entry.source_image is None and image_metadata is not None:
            entry = entry.model_copy(update={"source_image": image_metadata.uri})
        if not validate_entry(entry):
            logger.debug(
                "Dropped entry without content | provenance=%s tags=%s contexts=%s",
                provenance,
                entry.tags,
                entry.contexts,
            )
            dropped += 1
            continue
        entries.append(entry)

    log_event(
        {
            "status": "success",
            "provenance": provenance,
            "entries": len(entries),
            "dropped": dropped,
            "page_date": page_date,
            "image": image_metadata.uri if image_metadata else None,
            "collection_dates": sorted({format_date(entry.collection_date) for entry in entries}),
        }
    )
    return PipelineResult(
        entries=entries,
        provenance=provenance,
        page_date=page_date,
        image_metadata=image_metadata,
        dropped=dropped,
    )


async def process_text(
    raw_text: str,
    *,
    image_path: str | None = None,
    provenance: str = "parser",
    context: PipelineContext | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    context = context or build_context(now=now)
    image_metadata = await lookup_image_metadata(image_path, context)
    parsed = BulletPatternParser().parse(raw_text, today=context.clock().date())
    result = finalize_candidates(
        parsed.candidates,
        provenance=provenance,
        context=context,
        page_date=parsed.page_date,
        image_metadata=image_metadata,
    )
    result.dropped += parsed.dropped_lines
    return result


async def process_provider_payload(
    payload: Any,
    *,
    provenance: str,
    image_path: str | None = None,
    context: PipelineContext | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    context = context or build_context(now=now)
    try:
        provider_payload = read_provider_payload(payload)
    except ProviderPayloadError as exc:
        log_event({"status": "error", "provenance": provenance, "error": str(exc)})
        raise
    image_metadata = await lookup_image_metadata(image_path, context)
    return finalize_candidates(
        provider_payload.candidates,
        provenance=provenance,
        context=context,
        page_date=provider_payload.page_date,
        image_metadata=image_metadata,
    )


async def process_page(page: PageInput, *, context: PipelineContext) -> PipelineResult:
    if page.text is not None:
        return await process_text(
            page.text,
            image_path=page.image_path,
            provenance=page.provenance,
            context=context,
        )
    return await process_provider_payload(
        page.payload,
        provenance=page.provenance,
        image_path=page.image_path,
        context=context,
    )


async def process_batch(
    pages: Sequence[PageInput],
    *,
    context: PipelineContext | None = None,
    now: datetime | None = None,
    photo_library: Optional[PhotoLibrary] = None,
) -> List[PipelineResult]:
    """Process pages concurrently; metadata lookups share one concurrency bound.

    A page whose provider response holds no JSON yields an empty result with
    ``error`` set; the other pages are unaffected.
    """

    context = context or build_context(now=now, photo_library=photo_library)
    return list(await asyncio.gather(*(_process_isolated(page, context) for page in pages)))


async def _process_isolated(page: PageInput, context: PipelineContext) -> PipelineResult:
    try:
        return await process_page(page, context=context)
    except ProviderPayloadError as exc:
        return PipelineResult(entries=[], provenance=page.provenance, error=str(exc))


__all__ = [
    "PipelineResult",
    "PageInput",
    "PipelineContext",
    "build_context",
    "lookup_image_metadata",
    "finalize_candidates",
    "process_text",
    "process_provider_payload",
    "process_page",
    "process_batch",
]
