#!/usr/bin/env python3
"""
CLI script to run the post-processing stages over a list of snippets.

Reads snippets (a JSON list, or an object with a "snippets" list) gathered
for SRC, runs the default stages and prints the resulting snippets.

Settings come from EMBED_* environment variables or a .env file.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from embed_pipeline.config import PipelineConfig
from embed_pipeline.exceptions import EmbedPipelineError
from embed_pipeline.main import EmbedPipeline


async def run_file(src: str, snippets: list, config: PipelineConfig) -> list:
    async with EmbedPipeline(config=config) as pipeline:
        result = await pipeline.process(src, snippets)
    return [s.model_dump(exclude_none=True) for s in result.snippets]


def main():
    parser = argparse.ArgumentParser(description="Normalize and enrich embed snippets")
    parser.add_argument("src", help="Source URL the snippets were extracted from")
    parser.add_argument("snippets", help="JSON file with snippets")
    parser.add_argument("--output", "-o", help="Output JSON file")
    parser.add_argument("--cache-dir", help="Directory for the image-size cache")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    overrides = {}
    if args.cache_dir:
        overrides["cache_dir"] = args.cache_dir
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    config = PipelineConfig.from_env(**overrides)

    data = json.loads(Path(args.snippets).read_text())
    snippets = data["snippets"] if isinstance(data, dict) else data

    try:
        processed = asyncio.run(run_file(args.src, snippets, config))
    except EmbedPipelineError as e:
        status = getattr(e, "status_code", None)
        suffix = f" (status {status})" if status else ""
        print(f"✗ Error: {e.message}{suffix}", file=sys.stderr)
        sys.exit(1)

    output = json.dumps(processed, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output)
        print(f"Saved to: {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
