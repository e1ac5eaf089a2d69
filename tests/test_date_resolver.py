from datetime import date, datetime, timedelta, timezone

import pytest

from bujo_capture.date_resolver import DateResolver, resolve_collection_date
from bujo_capture.models import Entry, ImageMetadata

NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _resolver() -> DateResolver:
    return DateResolver(tz=timezone.utc, clock=lambda: NOW)


def _image(created_at: datetime, estimated: date | None = None) -> ImageMetadata:
    return ImageMetadata(
        uri="file:///tmp/page.jpg",
        created_at=created_at,
        modified_at=created_at,
        estimated_journal_date=estimated,
    )


def test_page_date_beats_conflicting_entry_date():
    resolution = _resolver().resolve({"date": "2025-03-01"}, page_date="2025-03-05")

    assert resolution.collection_date == date(2025, 3, 5)
    assert resolution.source == "page_date"


def test_page_date_read_from_candidate():
    resolution = _resolver().resolve({"pageDate": "3/7/2025", "date": "2025-03-01"})

    assert resolution.collection_date == date(2025, 3, 7)


def test_entry_date_then_collection_date():
    resolver = _resolver()

    assert resolver.resolve({"date": "yesterday", "collectionDate": "2025-02-01"}).source == "entry_date"
    collection = resolver.resolve({"collectionDate": "2025-02-01"})
    assert collection.collection_date == date(2025, 2, 1)
    assert collection.source == "collection_date"


def test_unparseable_source_is_skipped():
    resolution = _resolver().resolve({"date": "2025-03-02"}, page_date="smudged ink ???")

    assert resolution.collection_date == date(2025, 3, 2)
    assert resolution.source == "entry_date"


def test_null_placeholder_strings_are_absent():
    resolution = _resolver().resolve({"date": "null", "pageDate": "None"})

    assert resolution.source == "today"


def test_image_created_at_used_when_recent():
    created = NOW - timedelta(days=2)

    resolution = _resolver().resolve({}, image=_image(created))

    assert resolution.collection_date == created.date()
    assert resolution.source == "image_created_at"


def test_estimated_journal_date_preferred_over_created_at():
    image = _image(NOW - timedelta(days=2), estimated=date(2025, 3, 11))

    resolution = _resolver().resolve({}, image=image)

    assert resolution.collection_date == date(2025, 3, 11)
    assert resolution.source == "estimated_journal_date"


@pytest.mark.parametrize(
    ("created_days_ago", "estimated_days_ago", "source"),
    [
        (40, 40, "today"),
        (10, None, "today"),
        (6, 31, "image_created_at"),
        (60, 29, "estimated_journal_date"),
    ],
)
def test_image_windows(created_days_ago, estimated_days_ago, source):
    estimated = TODAY - timedelta(days=estimated_days_ago) if estimated_days_ago is not None else None
    image = _image(NOW - timedelta(days=created_days_ago), estimated=estimated)

    assert _resolver().resolve({}, image=image).source == source


def test_explicit_dates_beat_image_metadata():
    image = _image(NOW - timedelta(days=1), estimated=date(2025, 3, 11))

    resolution = _resolver().resolve({"date": "2025-02-20"}, image=image)

    assert resolution.collection_date == date(2025, 2, 20)


def test_no_sources_falls_back_to_today():
    resolution = _resolver().resolve({})

    assert resolution.collection_date == TODAY
    assert resolution.source == "today"


def test_non_mapping_candidate_falls_back_to_today():
    assert _resolver().resolve(None).collection_date == TODAY


def test_apply_sets_collection_date_and_due_time():
    entry = Entry(id="e1", content="Lunch", created_at=NOW, collection_date=TODAY)

    resolved = _resolver().apply(entry, {"time": "13:00"}, page_date="2025-03-10")

    assert resolved.collection_date == date(2025, 3, 10)
    assert resolved.due_date == datetime(2025, 3, 10, 13, 0, tzinfo=timezone.utc)
    assert entry.collection_date == TODAY


def test_resolve_collection_date_shortcut():
    assert resolve_collection_date({"date": "tomorrow"}, now=NOW) == date(2025, 3, 13)
    assert resolve_collection_date({}, now=NOW) == TODAY
