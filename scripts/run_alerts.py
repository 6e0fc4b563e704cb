"""
Run Expiration Alerts Script

Runs the alert batch job once and prints the email plan as JSON.
Meant for a daily scheduler; nothing is sent.

Usage:
    python scripts/run_alerts.py
    python scripts/run_alerts.py --horizon-days 7 --as-of 2026-03-01
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ndavault.config.settings import settings
from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory
from ndavault.infrastructure.db.database import close_db, get_session_context
from ndavault.infrastructure.db.repositories import (
    AgreementRepository,
    SubscriptionRepository,
)
from ndavault.infrastructure.services.alert_job import AlertBatchJob

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def run_alerts(horizon_days: int, as_of: date) -> dict:
    """Run the job in its own session and return the serialized result."""
    async with get_session_context() as session:
        job = AlertBatchJob(
            AgreementRepository(session),
            SubscriptionRepository(session),
            user_directory=SupabaseUserDirectory(settings),
            settings=settings,
        )
        result = await job.run(horizon_days=horizon_days, as_of=as_of)

    return result.model_dump(mode="json", by_alias=True)


async def main():
    parser = argparse.ArgumentParser(description="Plan NDA expiration alert emails")
    parser.add_argument(
        "--horizon-days",
        type=int,
        default=settings.alert_horizon_days,
        help="Days ahead to look for expirations (default: %(default)s)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=date.today(),
        help="Run as if today were this date (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    try:
        summary = await run_alerts(args.horizon_days, args.as_of)
    finally:
        await close_db()

    print(json.dumps(summary, indent=2, ensure_ascii=False))
    logger.info(f"Would send {summary['emailsThatWouldBeSent']} emails")


if __name__ == "__main__":
    asyncio.run(main())
