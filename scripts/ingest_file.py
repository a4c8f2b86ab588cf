#!/usr/bin/env python3
"""CLI helper that runs the ingestion pipeline on a local file and prints the result."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from learning_star.config import IngestionSettings
from learning_star.ingest.format_detection import FileTypeDetector, UnsupportedFileTypeError
from learning_star.ingest.models import FileType, IngestionContext, IngestionStatus
from learning_star.ingest.pipeline import IngestionPipeline
from learning_star.logging_config import configure_logging


def _load_dotenv() -> None:
    project_root = Path(__file__).resolve().parents[1]
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file)
    else:  # pragma: no cover - fallback path
        load_dotenv()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="File to ingest")
    parser.add_argument("--file-type", choices=[item.value for item in FileType], help="Override detection")
    parser.add_argument("--resource-id", default=None, help="Resource id (random when omitted)")
    parser.add_argument("--course-id", default="local")
    parser.add_argument("--user-id", default="local")
    parser.add_argument("--mock", action="store_true", help="Use mock embeddings")
    parser.add_argument("--max-tokens", type=int, default=None)
    parser.add_argument("--overlap-tokens", type=int, default=None)
    parser.add_argument("--with-vectors", action="store_true", help="Include embedding vectors in the output")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    _load_dotenv()
    args = _parse_args(argv)
    configure_logging(level=args.log_level)

    if not args.path.is_file():
        logging.error("File not found: %s", args.path)
        return 2

    settings = IngestionSettings.from_env()
    if args.max_tokens is not None:
        settings = replace(settings, max_tokens=args.max_tokens)
    if args.overlap_tokens is not None:
        settings = replace(settings, overlap_tokens=args.overlap_tokens)

    try:
        file_type = FileType(args.file_type) if args.file_type else FileTypeDetector.detect(args.path.name)
    except UnsupportedFileTypeError as error:
        logging.error("%s; pass --file-type explicitly", error)
        return 2

    context = IngestionContext(
        resource_id=args.resource_id or str(uuid.uuid4()),
        course_id=args.course_id,
        user_id=args.user_id,
        file_type=file_type,
        filename=args.path.name,
    )

    pipeline = IngestionPipeline.from_settings(settings, use_mock_embeddings=args.mock)
    result = asyncio.run(pipeline.run(args.path.read_bytes(), context))
    json.dump(result.to_dict(include_embeddings=args.with_vectors), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 1 if result.status is IngestionStatus.FAILED else 0


if __name__ == "__main__":
    raise SystemExit(main())
