import json

import pytest

from bujo_capture.cli import render_result, run_cli


@pytest.mark.anyio
async def test_run_cli_renders_text_page(tmp_path):
    source = tmp_path / "page.txt"
    source.write_text("2025-03-10\n• Buy milk #errand\n○ Yoga 7pm\n", encoding="utf-8")

    rendered = json.loads(render_result(await run_cli(source)))

    assert rendered["provenance"] == "parser"
    assert rendered["pageDate"] == "2025-03-10"
    assert [entry["content"] for entry in rendered["entries"]] == ["Buy milk", "Yoga 7pm"]
    assert rendered["entries"][0]["collectionDate"] == "2025-03-10"
    assert rendered["entries"][1]["dueDate"].startswith("2025-03-10T19:00")


@pytest.mark.anyio
async def test_run_cli_reads_provider_payload(tmp_path):
    source = tmp_path / "response.json"
    source.write_text(json.dumps({"entries": [{"content": "call bank", "type": "todo"}]}), encoding="utf-8")

    result = await run_cli(source, provider="mistral")

    assert result.provenance == "mistral"
    assert result.entries[0].content == "Call bank"
    assert result.entries[0].id.startswith("mistral-")
