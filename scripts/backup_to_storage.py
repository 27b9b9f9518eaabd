#!/usr/bin/env python3
"""HealthHub Scheduled Backup.

Backs up every known user's layouts, presets and text cards into one blob
under ``backups/<project>/``, then deletes blobs past the retention window.
Designed for cron or Windows Task Scheduler.

Exit codes:
    0 — backup uploaded
    1 — backup or upload failed

Usage:
    python scripts/backup_to_storage.py
    python scripts/backup_to_storage.py --retention-days 30
    python scripts/backup_to_storage.py --cleanup-only
"""

import argparse
import asyncio
import json
import sys

from healthhub import __version__
from healthhub.config import get_config
from healthhub.database import close_engine, create_tables
from healthhub.dependencies import get_app_config, get_retention_manager, get_scheduled_backup_job
from healthhub.errors import HealthHubError
from healthhub.utils.logging import get_logger, setup_logging

logger = get_logger("scripts.backup_to_storage")


async def _run(cleanup_only: bool) -> dict:
    config = get_app_config()
    await create_tables(config)
    try:
        if cleanup_only:
            return await get_retention_manager().cleanup_old_backups()
        return await get_scheduled_backup_job().run()
    finally:
        await close_engine()


def main() -> int:
    parser = argparse.ArgumentParser(description="HealthHub scheduled backup")
    parser.add_argument(
        "--retention-days",
        type=int,
        default=None,
        help="Override the retention window in days",
    )
    parser.add_argument(
        "--cleanup-only",
        action="store_true",
        help="Only delete old backups, do not upload a new one",
    )
    args = parser.parse_args()

    config = get_config()
    setup_logging(
        debug=config.debug,
        log_dir=config.log_dir,
        service="healthhub-backup-job",
        version=__version__,
    )

    if args.retention_days is not None:
        if args.retention_days < 1:
            parser.error("--retention-days must be at least 1")
        get_app_config().backup_retention_days = args.retention_days

    try:
        result = asyncio.run(_run(args.cleanup_only))
    except HealthHubError as e:
        logger.error("scheduled_backup_failed", error=str(e))
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
