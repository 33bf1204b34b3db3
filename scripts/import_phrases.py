#!/usr/bin/env python3
"""
Seed the phrase catalog from a JSON file.

Usage: python scripts/import_phrases.py [data/phrases.json]

Set FORCE_IMPORT=true to import even when phrases already exist.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.config.dependencies import build_repository  # noqa: E402
from app.config.settings import settings  # noqa: E402
from app.database import DatabaseUnavailable  # noqa: E402
from app.services.phrase_import import import_phrases, load_phrase_file  # noqa: E402

logger = logging.getLogger("scripts.import_phrases")

DEFAULT_PHRASE_FILE = Path("data/phrases.json")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


async def run_import(items: list, *, force: bool) -> int:
    repository, database = build_repository(settings)

    try:
        if database is not None:
            try:
                await database.connect()
            except DatabaseUnavailable as exc:
                # No database is not an import failure.
                logger.error("Skipping phrase import: %s", exc)
                return 0
            await database.init_models()

        report = await import_phrases(repository, items, force=force)
    finally:
        if database is not None:
            await database.dispose()

    if report.aborted:
        logger.info("Phrase import skipped.")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Import phrases into the catalog")
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=DEFAULT_PHRASE_FILE,
        help="JSON array of {\"phrase\": ...} objects (default: data/phrases.json)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        default=None,
        help="Import even when the catalog is not empty (overrides FORCE_IMPORT)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    force = args.force if args.force is not None else _env_flag("FORCE_IMPORT")
    try:
        items = load_phrase_file(args.path)
    except (OSError, ValueError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 1
    return asyncio.run(run_import(items, force=force))


if __name__ == "__main__":
    sys.exit(main())
