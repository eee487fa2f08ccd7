"""Run database migrations using roboct.shared.migrations.runner.

Usage:
    python scripts/db_migrate.py          # Run all pending migrations
    python scripts/db_migrate.py --dry    # Show pending migrations without applying
"""

import argparse
import asyncio
import logging
import sys

import asyncpg

from roboct.api.core.config import get_settings
from roboct.api.core.logging import setup_logging
from roboct.shared.migrations.runner import MigrationRunner

logger = logging.getLogger("db_migrate")


async def main(dry: bool) -> int:
    settings = get_settings()
    setup_logging(settings)

    pool = await asyncpg.create_pool(
        settings.database_url, min_size=1, max_size=2, statement_cache_size=0
    )
    try:
        runner = MigrationRunner(pool)

        if dry:
            pending = await runner.pending()
            applied = await runner.get_applied()
            logger.info(f"Applied: {len(applied)} | Pending: {len(pending)}")
            for path in pending:
                logger.info(f"  -> {path.stem}")
            if not pending:
                logger.info("Database is up to date.")
        else:
            newly_applied = await runner.run_pending()
            if not newly_applied:
                logger.info("No pending migrations.")
    finally:
        await pool.close()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Apply pending RobOct database migrations")
    parser.add_argument("--dry", action="store_true", help="list pending migrations only")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.dry)))
