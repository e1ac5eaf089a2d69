import asyncio
import json
from datetime import date, datetime, timezone

import pytest

from bujo_capture.config import Settings
from bujo_capture.image_metadata import unknown_metadata
from bujo_capture.pipeline import (
    PageInput,
    PipelineContext,
    build_context,
    process_batch,
    process_provider_payload,
    process_text,
)
from bujo_capture.provider_payload import ProviderPayloadError

NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)


def _read_events(settings):
    path = settings.log_dir / "processed_pages.jsonl"
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.mark.anyio
async def test_process_text_builds_dated_entries(settings):
    result = await process_text(
        "• Buy milk #errand @store\no Lunch with Sam 1pm",
        context=build_context(settings=settings, now=NOW),
    )

    task, event = result.entries
    assert result.provenance == "parser"
    assert task.type == "task"
    assert task.tags == ["errand"]
    assert task.contexts == ["store"]
    assert task.collection_date == date(2025, 3, 12)
    assert task.id.startswith("parser-")
    assert event.type == "event"
    assert event.due_date == datetime(2025, 3, 12, 13, 0, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_header_dates_every_entry_on_the_page(settings):
    result = await process_text(
        "March 10\n• Buy milk\nscribble\n— Rainy",
        context=build_context(settings=settings, now=NOW),
    )

    assert result.page_date == "2025-03-10"
    assert result.dropped == 1
    assert {entry.collection_date for entry in result.entries} == {date(2025, 3, 10)}


@pytest.mark.anyio
async def test_provider_page_date_beats_entry_dates(settings):
    payload = {
        "entries": [
            {"type": "done", "content": "x Finish report", "status": "todo", "date": "2025-03-01"},
            {"type": "task", "content": "   "},
        ],
        "metadata": {"page_date": "2025-03-05"},
    }

    result = await process_provider_payload(
        payload,
        provenance="gpt-vision",
        context=build_context(settings=settings, now=NOW),
    )

    assert len(result.entries) == 1
    assert result.dropped == 1
    entry = result.entries[0]
    assert entry.type == "task"
    assert entry.status == "incomplete"
    assert entry.content == "Finish report"
    assert entry.collection_date == date(2025, 3, 5)
    assert entry.id.startswith("gpt-vision-")


@pytest.mark.anyio
async def test_invalid_provider_response_raises_and_is_logged(settings):
    with pytest.raises(ProviderPayloadError):
        await process_provider_payload(
            "no json here",
            provenance="gpt-vision",
            context=build_context(settings=settings, now=NOW),
        )

    events = _read_events(settings)
    assert events[-1]["status"] == "error"
    assert events[-1]["provenance"] == "gpt-vision"


@pytest.mark.anyio
async def test_success_event_written(settings):
    await process_text("• Walk dog", context=build_context(settings=settings, now=NOW))

    event = _read_events(settings)[-1]
    assert event["status"] == "success"
    assert event["entries"] == 1
    assert event["collection_dates"] == ["2025-03-12"]


@pytest.mark.anyio
async def test_image_without_file_falls_back_to_today(settings):
    result = await process_text(
        "• Stretch",
        image_path="/nonexistent/scan.jpg",
        context=build_context(settings=settings, now=NOW),
    )

    assert result.image_metadata is not None
    assert result.entries[0].source_image == "/nonexistent/scan.jpg"
    assert result.entries[0].collection_date == date(2025, 3, 12)


class SlowEstimator:
    def __init__(self, delays):
        self.delays = delays

    async def extract(self, uri):
        await asyncio.sleep(self.delays.get(uri, 0))
        return unknown_metadata(uri, NOW)


@pytest.mark.anyio
async def test_batch_timeout_does_not_block_siblings(tmp_path):
    settings = Settings(timezone="UTC", log_dir=tmp_path / "logs", metadata_timeout_seconds=0.05)
    context = PipelineContext(
        settings=settings,
        clock=lambda: NOW,
        estimator=SlowEstimator({"slow.jpg": 5.0}),
        semaphore=asyncio.Semaphore(2),
    )
    pages = [
        PageInput(text="• Slow page", image_path="slow.jpg"),
        PageInput(text="• Fast page", image_path="fast.jpg"),
        PageInput(payload={"entries": [{"content": "From provider"}]}, provenance="gpt-vision"),
    ]

    results = await process_batch(pages, context=context)

    assert [result.entries[0].content for result in results] == ["Slow page", "Fast page", "From provider"]
    assert results[0].image_metadata.source == "unknown"
    assert results[0].image_metadata.created_at == NOW
    assert results[2].provenance == "gpt-vision"


@pytest.mark.anyio
async def test_batch_keeps_good_pages_when_one_response_is_unreadable(settings):
    pages = [
        PageInput(text="• Good page"),
        PageInput(payload="no json", provenance="gpt-vision"),
    ]

    good, bad = await process_batch(pages, context=build_context(settings=settings, now=NOW))

    assert [entry.content for entry in good.entries] == ["Good page"]
    assert good.error is None
    assert bad.entries == []
    assert bad.provenance == "gpt-vision"
    assert "invalid JSON" in bad.error
    assert [event["status"] for event in _read_events(settings)] == ["success", "error"]


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def debug(self, message, *args):
        self.messages.append(message % args)

    def warning(self, message, *args):
        self.messages.append(message % args)


@pytest.mark.anyio
async def test_dropped_entries_are_logged_with_their_sigils(settings, monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr("bujo_capture.pipeline.logger", recorder)

    result = await process_text("• #a #b @desk\n• Real task", context=build_context(settings=settings, now=NOW))

    assert [entry.content for entry in result.entries] == ["Real task"]
    assert result.dropped == 1
    assert recorder.messages == ["Dropped entry without content | provenance=parser tags=['a', 'b'] contexts=['desk']"]
