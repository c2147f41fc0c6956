"""
Seed the metrics tables with placeholder rows.

Inserts the same static sample data that mock mode serves, so a fresh
Supabase project shows a populated dashboard through the real aggregation
path. Users and frequent questions are upserted, so re-running is safe for
those; event tables get duplicate rows on every run.

Usage:
    python3 -m scripts.seed_placeholder_data
    python3 -m scripts.seed_placeholder_data --type workflow_execution --limit 20
    python3 -m scripts.seed_placeholder_data --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure package imports work from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from assistant_metrics.models.metrics import READ_TABLES  # noqa: E402
from assistant_metrics.services.placeholder import placeholder_rows  # noqa: E402
from assistant_metrics.services.supabase import get_supabase_client  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# Upsert keys for tables that are not append-only
_UPSERT_KEYS = {"users": "user_id", "frequent_questions": "question_pattern"}


async def seed(types: list[str], limit: int, dry_run: bool = False) -> int:
    """Write placeholder rows for each metric type. Returns rows written."""
    sb = None if dry_run else await get_supabase_client()
    written = 0

    for metric_type in types:
        table = READ_TABLES[metric_type]
        rows = placeholder_rows(metric_type, limit)
        if metric_type == "frequent_question":
            # Serial ids are assigned by the database
            rows = [{k: v for k, v in r.items() if k != "id"} for r in rows]

        if dry_run:
            logger.info("[dry-run] %s: %d rows", table, len(rows))
            continue

        try:
            upsert_key = _UPSERT_KEYS.get(table)
            if upsert_key:
                await sb.table(table).upsert(rows, on_conflict=upsert_key).execute()
            else:
                await sb.table(table).insert(rows).execute()
            written += len(rows)
            logger.info("  %s: %d rows", table, len(rows))
        except Exception as e:
            logger.error("  Failed to seed %s: %s", table, e)

    logger.info("Seed complete: %d rows written", written)
    return written


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed placeholder metrics")
    parser.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=sorted(READ_TABLES),
        help="Metric type to seed (repeatable). Default: all types.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=1000,
        help="Max rows per type (default: 1000, i.e. the full sample set)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would be written",
    )
    args = parser.parse_args()

    asyncio.run(seed(args.types or sorted(READ_TABLES), args.limit, args.dry_run))


if __name__ == "__main__":
    main()
