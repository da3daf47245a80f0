"""
New Opportunity Broadcast

Emails every active, verified student when an opportunity is posted.

Runs after the create transaction has committed (scheduled as a FastAPI
background task), so nothing here can fail or slow down the create call.

Design Principles:
- Sends run concurrently, bounded by NOTIFICATION_CONCURRENCY
- Each recipient is retried with exponential backoff
- One recipient's failure never affects another
- The broadcast opens its own database session
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from trustteams.core.config import settings
from trustteams.core.database import async_session_maker
from trustteams.core.email import build_opportunity_link, send_new_opportunity_email
from trustteams.modules.opportunities import repository
from trustteams.modules.opportunities.models import Opportunity
from trustteams.modules.users.models import User
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_seconds: float) -> float:
    """Delay before the retry that follows ``attempt`` (1-based)."""
    return base_seconds * 2 ** (attempt - 1)


async def send_with_retry(
    send: Callable[[], Awaitable[bool]],
    recipient: str,
    max_attempts: int,
    base_seconds: float,
) -> bool:
    """
    Call ``send`` until it returns True or attempts run out.

    An exception from ``send`` counts as a failed attempt.

    Returns:
        True if any attempt succeeded
    """
    for attempt in range(1, max_attempts + 1):
        try:
            if await send():
                return True
            logger.warning(f"Opportunity email to {recipient} failed (attempt {attempt}/{max_attempts})")
        except Exception as e:
            logger.warning(
                f"Opportunity email to {recipient} raised on attempt {attempt}/{max_attempts}: {e}"
            )

        if attempt < max_attempts:
            await asyncio.sleep(backoff_delay(attempt, base_seconds))

    return False


async def notify_students(
    opportunity: Opportunity,
    posted_by_name: str,
    students: list[User],
    *,
    concurrency: int | None = None,
    max_attempts: int | None = None,
    base_seconds: float | None = None,
) -> dict[str, Any]:
    """
    Send the new-opportunity email to each student.

    Returns:
        Summary dict with total, sent, failed and failed_recipients
    """
    concurrency = concurrency or settings.notification_concurrency
    max_attempts = max_attempts or settings.notification_max_attempts
    if base_seconds is None:
        base_seconds = settings.notification_retry_base_seconds

    semaphore = asyncio.Semaphore(concurrency)
    link = build_opportunity_link(opportunity.id)
    deadline = opportunity.closing_date.date().isoformat() if opportunity.closing_date else None

    async def _notify(student: User) -> bool:
        async def _send() -> bool:
            return await send_new_opportunity_email(
                to_email=student.email,
                student_name=student.name,
                posted_by_name=posted_by_name,
                title=opportunity.title,
                opportunity_type=opportunity.type.value,
                description=opportunity.description,
                requirements=opportunity.requirements,
                stipend=opportunity.stipend,
                duration=opportunity.duration,
                location=opportunity.location,
                deadline=deadline,
                opportunity_link=link,
            )

        async with semaphore:
            return await send_with_retry(_send, student.email, max_attempts, base_seconds)

    outcomes = await asyncio.gather(*(_notify(student) for student in students))

    failed_recipients = [student.email for student, ok in zip(students, outcomes) if not ok]
    summary = {
        "total": len(students),
        "sent": len(students) - len(failed_recipients),
        "failed": len(failed_recipients),
        "failed_recipients": failed_recipients,
    }
    logger.info(
        f"Opportunity {opportunity.id} broadcast: {summary['sent']}/{summary['total']} sent, "
        f"{summary['failed']} failed"
    )
    return summary


async def broadcast_new_opportunity(opportunity_id: str) -> dict[str, Any]:
    """
    Notify all students about a newly created opportunity.

    Safe to run as a background task: every error is logged, none is raised.
    """
    try:
        async with async_session_maker() as db:
            opportunity = await repository.get_by_id(db, opportunity_id)
            if opportunity is None:
                logger.warning(f"Broadcast skipped, opportunity {opportunity_id} not found")
                return {"total": 0, "sent": 0, "failed": 0, "failed_recipients": []}

            students = await UserRepository.list_notifiable_students(db)
            poster = None
            if opportunity.posted_by:
                poster = await UserRepository.get_by_id(db, opportunity.posted_by)

        posted_by_name = poster.name if poster else "TrustTeams"
        logger.info(f"Broadcasting opportunity {opportunity_id} to {len(students)} students")
        return await notify_students(opportunity, posted_by_name, students)
    except Exception as e:
        logger.error(f"Broadcast of opportunity {opportunity_id} failed: {e}", exc_info=True)
        return {"total": 0, "sent": 0, "failed": 0, "failed_recipients": [], "error": str(e)}
