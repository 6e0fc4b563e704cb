"""
Alert Routes

Manual trigger for the expiration-alert batch job. The job only plans the
emails; the response lists every message that would be sent.
Protected by API key authentication.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ndavault.api.dependencies import AlertJobDep
from ndavault.config.settings import get_settings
from ndavault.domain.alerts import AlertRunResult


logger = logging.getLogger(__name__)


# =============================================================================
# Admin API Key Authentication
# =============================================================================

async def verify_admin_api_key(
    x_admin_key: Optional[str] = Header(
        default=None, description="Admin API key for protected operations"
    ),
) -> bool:
    """
    Verify admin API key from header.

    The admin key should be set in environment variable ADMIN_API_KEY.
    """
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    # Use secrets.compare_digest for timing-attack resistance
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin API key"
        )

    return True


router = APIRouter()


@router.post(
    "/alerts/run",
    response_model=AlertRunResult,
    dependencies=[Depends(verify_admin_api_key)],
)
async def run_alerts(
    job: AlertJobDep,
    horizon_days: Optional[int] = Query(default=None, ge=0, le=365),
):
    """
    Run the alert job for today.

    Finds agreements expiring exactly ``horizon_days`` from today (30 by
    default) and returns one email preview per entitled user.
    """
    logger.info("Starting manual email alert job...")
    return await job.run(horizon_days=horizon_days)


@router.get("/alerts/run")
async def alerts_info():
    """Simple endpoint to check the alert API is up."""
    return {
        "status": "Email alert API is running",
        "usage": "POST /api/alerts/run with X-Admin-Key to trigger the alert job",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
