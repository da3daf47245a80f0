"""
Opportunities Background Jobs

Scheduled tasks for the opportunity catalog:
1. Close open opportunities whose closing date has passed

Reads already close expired postings they happen to see; this job closes
the ones nobody reads, so listings filtered by status stay accurate.

Design Principles:
- Jobs are idempotent (a second run finds nothing to close)
- Jobs handle their own database sessions
- Jobs log all operations for auditing

Schedule:
- Runs every AUTO_CLOSE_INTERVAL_MINUTES (default 15)
- Can also be triggered manually via POST /opportunities/auto-close-expired
  or the debug job endpoints
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from trustteams.core.config import settings
from trustteams.core.database import async_session_maker
from trustteams.core.scheduler import register_job
from trustteams.modules.opportunities import service

logger = logging.getLogger(__name__)

# Job IDs for registration and manual triggering
JOB_ID_AUTO_CLOSE_EXPIRED = "opportunities_auto_close_expired"


async def auto_close_expired_opportunities() -> dict[str, Any]:
    """
    Close expired opportunities and write their AUTO_CLOSE audit entries.

    Returns:
        Dict with closed_count and closed_ids
    """
    logger.info("Starting auto-close of expired opportunities")

    async with async_session_maker() as db:
        result = await service.auto_close_expired(db)

    logger.info(f"Auto-close completed: {result.closed_count} closed")
    return {"closed_count": result.closed_count, "closed_ids": result.closed_ids}


def register_opportunity_jobs() -> None:
    """Register all opportunity background jobs with the scheduler."""
    logger.info("Registering opportunity background jobs...")

    register_job(
        job_id=JOB_ID_AUTO_CLOSE_EXPIRED,
        func=auto_close_expired_opportunities,
        trigger=IntervalTrigger(minutes=settings.auto_close_interval_minutes),
    )

    logger.info(f"Registered job: {JOB_ID_AUTO_CLOSE_EXPIRED}")
