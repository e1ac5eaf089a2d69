"""Simple CLI for manual testing of the pipeline."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from bujo_capture.pipeline import PipelineResult, process_provider_payload, process_text


async def run_cli(
    source: Path,
    *,
    provider: str | None = None,
    image: str | None = None,
) -> PipelineResult:
    content = source.read_text(encoding="utf-8")
    if provider:
        return await process_provider_payload(content, provenance=provider, image_path=image)
    return await process_text(content, image_path=image)


def render_result(result: PipelineResult) -> str:
    payload = {
        "provenance": result.provenance,
        "pageDate": result.page_date,
        "dropped": result.dropped,
        "entries": [entry.model_dump(mode="json", by_alias=True) for entry in result.entries],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def main() -> None:
    parser = argparse.ArgumentParser(description="Turn a recognized journal page into canonical entries")
    parser.add_argument("source", type=Path, help="Text file with recognized lines, or provider JSON")
    parser.add_argument(
        "--provider",
        help="Treat the source as a provider payload and tag entries with this provenance (e.g. gpt-vision)",
    )
    parser.add_argument("--image", help="Path or URI of the scanned page image")
    args = parser.parse_args()

    result = asyncio.run(run_cli(args.source, provider=args.provider, image=args.image))
    print(render_result(result))


if __name__ == "__main__":
    main()
