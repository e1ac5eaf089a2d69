"""Capture-time and journal-day estimation for scanned page images."""
from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Protocol, Sequence, Tuple
from urllib.parse import unquote, urlparse
from zoneinfo import ZoneInfo

from bujo_capture.logging_utils import get_logger
from bujo_capture.models import ImageMetadata, ImageSource, Location
from bujo_capture.time_utils import as_local, days_between

logger = get_logger("image_metadata")

CAMERA_HINTS = ("imagepicker", "camera", "dcim")
GALLERY_HINTS = ("photos", "media-library", "assets-library", "ph://")
IMAGE_FORMATS = {
    "jpg": "jpeg",
    "jpeg": "jpeg",
    "png": "png",
    "gif": "gif",
    "webp": "webp",
    "heic": "heic",
    "heif": "heic",
}
ASSET_SCAN_LIMIT = 100


@dataclass(slots=True)
class PhotoAsset:
    uri: str
    filename: str
    creation_time: datetime
    modification_time: datetime
    width: int = 0
    height: int = 0
    location: Location | None = None


class PhotoLibrary(Protocol):
    """Device photo index consulted for gallery images."""

    async def request_permission(self) -> bool: ...

    async def recent_assets(self, limit: int) -> Sequence[PhotoAsset]: ...


@dataclass(frozen=True)
class JournalDayPolicy:
    """Which journal day a photo most likely belongs to.

    Evening photos from yesterday count for today; early-morning photos
    count for yesterday. ``morning_rule_first`` lets the morning rule win
    over the same-day rule.
    """

    evening_cutoff_hour: int = 18
    morning_cutoff_hour: int = 10
    morning_rule_first: bool = False

    def estimate(self, created_at: datetime, now: datetime) -> date:
        local = as_local(created_at, now.tzinfo) if now.tzinfo else created_at
        today = now.date()
        yesterday = today - timedelta(days=1)
        image_day = local.date()
        is_morning = image_day == today and local.hour < self.morning_cutoff_hour

        if self.morning_rule_first and is_morning:
            return yesterday
        if image_day == today:
            return today
        if image_day == yesterday and local.hour >= self.evening_cutoff_hour:
            return today
        if is_morning:
            return yesterday
        return image_day


@dataclass(frozen=True)
class FilenameDateFormat:
    name: str
    pattern: re.Pattern[str]
    has_time: bool
    month_first: bool = False
    meridiem: bool = False


def _filename_format(name: str, regex: str, **flags: bool) -> FilenameDateFormat:
    return FilenameDateFormat(
        name=name,
        pattern=re.compile(regex, re.IGNORECASE),
        has_time=flags.get("has_time", False),
        month_first=flags.get("month_first", False),
        meridiem=flags.get("meridiem", False),
    )


# Camera naming conventions, most specific first: IMG_20240115_143022.jpg,
# PXL_20240115_143022123.jpg, 2024-01-15 14.30.22.jpg, 20240115.jpg,
# Screenshot 2024-01-15 at 2.30.22 PM.png, 2024-01-15.jpg, 01152024.jpg
FILENAME_DATE_FORMATS: Tuple[FilenameDateFormat, ...] = (
    _filename_format(
        "screenshot",
        r"(\d{4})-(\d{2})-(\d{2}) at (\d{1,2})\.(\d{2})\.(\d{2})\s*([ap]m)",
        has_time=True,
        meridiem=True,
    ),
    _filename_format("compact", r"(\d{4})(\d{2})(\d{2})[_\-\s]?(\d{2})(\d{2})(\d{2})", has_time=True),
    _filename_format(
        "dashed", r"(\d{4})-(\d{2})-(\d{2})[_\-\sT]?(\d{2})[:.\-](\d{2})[:.\-](\d{2})", has_time=True
    ),
    _filename_format("date_only", r"(\d{4})-(\d{2})-(\d{2})"),
    _filename_format("compact_date", r"(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)"),
    _filename_format("us_compact", r"(?<!\d)(\d{2})(\d{2})(\d{4})(?!\d)", month_first=True),
)


def image_format(filename: str) -> str:
    extension = PurePosixPath(filename).suffix.lstrip(".").lower()
    return IMAGE_FORMATS.get(extension, "unknown")


def classify_source(uri: str) -> ImageSource:
    lowered = uri.lower()
    if any(hint in lowered for hint in CAMERA_HINTS):
        return "camera"
    if any(hint in lowered for hint in GALLERY_HINTS):
        return "gallery"
    return "unknown"


def filename_of(uri: str) -> str:
    return PurePosixPath(unquote(urlparse(uri).path or uri)).name


def local_path(uri: str) -> Optional[Path]:
    parsed = urlparse(uri)
    if parsed.scheme in ("", "file"):
        return Path(unquote(parsed.path if parsed.scheme else uri))
    return None


def extract_date_from_filename(
    filename: str,
    *,
    now: datetime,
    window_days: int = 365,
) -> Optional[datetime]:
    """Timestamp encoded in a camera-style file name, if within the window of now."""

    for fmt in FILENAME_DATE_FORMATS:
        match = fmt.pattern.search(filename)
        if match is None:
            continue
        groups = match.groups()
        if fmt.month_first:
            month, day, year = (int(part) for part in groups[:3])
        else:
            year, month, day = (int(part) for part in groups[:3])
        hour = minute = second = 0
        if fmt.has_time:
            hour, minute, second = (int(part) for part in groups[3:6])
            if fmt.meridiem:
                is_pm = groups[6].lower() == "pm"
                if is_pm and hour != 12:
                    hour += 12
                elif not is_pm and hour == 12:
                    hour = 0
        try:
            value = datetime(year, month, day, hour, minute, second, tzinfo=now.tzinfo)
        except ValueError:
            continue
        if days_between(value, now) <= window_days:
            return value
        logger.debug("Filename date %s outside the accepted window", value.isoformat())
    return None


def match_asset(assets: Sequence[PhotoAsset], uri: str) -> Optional[PhotoAsset]:
    filename = filename_of(uri)
    for asset in assets:
        if asset.uri == uri or asset.filename == filename or (filename and filename in asset.uri):
            return asset
    return None


def unknown_metadata(uri: str, now: datetime) -> ImageMetadata:
    return ImageMetadata(uri=uri, created_at=now, modified_at=now)


class ImageMetadataEstimator:
    """Best-effort metadata lookup; every step may fail without aborting."""

    def __init__(
        self,
        *,
        tz: ZoneInfo | None = None,
        photo_library: PhotoLibrary | None = None,
        policy: JournalDayPolicy | None = None,
        filename_window_days: int = 365,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tz = tz or ZoneInfo("UTC")
        self._photo_library = photo_library
        self._policy = policy or JournalDayPolicy()
        self._filename_window_days = filename_window_days
        self._clock = clock or (lambda: datetime.now(self._tz))

    async def extract(self, uri: str) -> ImageMetadata:
        now = self._clock()
        try:
            return await self._extract(uri, now)
        except Exception as exc:
            logger.warning("Metadata extraction failed for %s: %s", uri, exc)
            return unknown_metadata(uri, now)

    async def _extract(self, uri: str, now: datetime) -> ImageMetadata:
        metadata = unknown_metadata(uri, now)
        metadata.format = image_format(filename_of(uri))

        await self._apply_file_stat(metadata)

        metadata.source = classify_source(uri)
        if metadata.source == "camera":
            metadata.created_at = metadata.modified_at
        elif metadata.source == "gallery":
            await self._apply_library_asset(metadata)

        filename_date = extract_date_from_filename(
            filename_of(uri), now=now, window_days=self._filename_window_days
        )
        if filename_date is not None:
            metadata.created_at = filename_date

        metadata.estimated_journal_date = self._policy.estimate(metadata.created_at, now)
        logger.debug(
            "Metadata for %s | source=%s created_at=%s estimated=%s",
            uri,
            metadata.source,
            metadata.created_at.isoformat(),
            metadata.estimated_journal_date,
        )
        return metadata

    async def _apply_file_stat(self, metadata: ImageMetadata) -> None:
        path = local_path(metadata.uri)
        if path is None:
            return
        try:
            stat = await asyncio.to_thread(path.stat)
        except OSError as exc:
            logger.debug("Could not stat %s: %s", path, exc)
            return
        metadata.file_size = stat.st_size
        metadata.modified_at = datetime.fromtimestamp(stat.st_mtime, tz=self._tz)

    async def _apply_library_asset(self, metadata: ImageMetadata) -> None:
        if self._photo_library is None:
            return
        try:
            if not await self._photo_library.request_permission():
                logger.debug("Photo library permission denied")
                return
            assets = await self._photo_library.recent_assets(ASSET_SCAN_LIMIT)
        except Exception as exc:
            logger.warning("Could not access photo library: %s", exc)
            return

        asset = match_asset(assets, metadata.uri)
        if asset is None:
            return
        metadata.created_at = as_local(asset.creation_time, self._tz)
        metadata.modified_at = as_local(asset.modification_time, self._tz)
        metadata.width = asset.width
        metadata.height = asset.height
        metadata.format = image_format(asset.filename)
        metadata.location = asset.location


__all__ = [
    "PhotoAsset",
    "PhotoLibrary",
    "JournalDayPolicy",
    "FilenameDateFormat",
    "FILENAME_DATE_FORMATS",
    "ImageMetadataEstimator",
    "classify_source",
    "extract_date_from_filename",
    "filename_of",
    "image_format",
    "local_path",
    "match_asset",
    "unknown_metadata",
]
