#!/usr/bin/env python3
"""
Upload one or more local files through the pipeline.

Defaults to the ``public`` disk under STORAGE_ROOT and an SQLite
catalog in the working directory, so it runs without Postgres or cloud
credentials.

Usage:
    python scripts/upload_file.py photo.jpg other.png --user-id 7
    python scripts/upload_file.py photo.jpg --check-duplicates --on-duplicate skip
    python scripts/upload_file.py photo.jpg --disk spaces --database-url postgresql+asyncpg://...
"""

import argparse
import asyncio
import json
import sys

from mediahub.core.config import settings
from mediahub.core.logging import setup_logging
from mediahub.db.session import build_engine, build_session_factory, init_models
from mediahub.pipeline.context import UploadedFile, UploadUser
from mediahub.service import UploadService


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run files through the upload pipeline")
    parser.add_argument("files", nargs="+", help="Paths of the files to upload")
    parser.add_argument("--user-id", type=int, default=1)
    parser.add_argument("--disk", default="public")
    parser.add_argument("--directory", default=None)
    parser.add_argument("--private", action="store_true", help="Store with private visibility")
    parser.add_argument("--keep-name", action="store_true", help="Do not randomize the filename")
    parser.add_argument("--check-duplicates", action="store_true")
    parser.add_argument("--on-duplicate", choices=["reject", "skip", "rename"], default="reject")
    parser.add_argument("--max-size-mb", type=float, default=None)
    parser.add_argument("--database-url", default="sqlite+aiosqlite:///mediahub.sqlite3")
    parser.add_argument("--list-steps", action="store_true", help="Print the step catalogue and exit")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    engine = build_engine(args.database_url)
    await init_models(engine)
    service = UploadService.from_settings(
        settings,
        session_factory=build_session_factory(engine=engine),
    )

    if args.list_steps:
        print(json.dumps(service.available_steps(), indent=2, default=str))
        await engine.dispose()
        return 0

    configuration = {
        "disk": args.disk,
        "directory": args.directory,
        "is_public": not args.private,
        "randomize_filename": not args.keep_name,
        "check_duplicates": args.check_duplicates,
        "action_on_duplicate": args.on_duplicate,
        "max_size_mb": args.max_size_mb,
    }

    problems = service.validate_configuration(configuration)
    if problems:
        for field, message in problems.items():
            print(f"✗ {field}: {message}", file=sys.stderr)
        await engine.dispose()
        return 2

    files = [UploadedFile.from_path(path) for path in args.files]
    results = await service.process_many(files, UploadUser(id=args.user_id), configuration)

    failures = 0
    for file, result in zip(files, results):
        _print_result(file, result)
        failures += not result.success

    await engine.dispose()
    return 1 if failures else 0


def _print_result(file, result):
    icon = "✓" if result.success else "✗"
    print(f"\n{icon} {file.original_name}: {result.message}")
    if result.record is not None:
        print(f"    Media ID : {result.record.id}")
    if result.path:
        print(f"    Path     : {result.path}")
    if result.url:
        print(f"    URL      : {result.url}")
    for error in result.errors:
        print(f"    ⚠  {error}")


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
