"""
Daily overdue sweep.

The sweep is also exposed as POST /api/transactions/overdue-sweep for an
external cron; the in-process scheduler is only started when
SCHEDULER_ENABLED is set.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import config
from app.core.db.engine import AsyncSessionLocal
from app.modules.transactions.service import TransactionsService
from app.modules.transactions.side_effects import (
    SideEffectDispatcher,
    get_side_effect_dispatcher,
)

logger = logging.getLogger(__name__)

OVERDUE_JOB_ID = "overdue_sweep_job"


async def run_overdue_sweep(
    session_factory: Optional[async_sessionmaker] = None,
    dispatcher: Optional[SideEffectDispatcher] = None,
) -> int:
    """
    Run one sweep in its own session, commit, then deliver the overdue
    notifications and reminders.

    Returns:
        Number of loans marked pending
    """
    session_factory = session_factory or AsyncSessionLocal
    dispatcher = dispatcher or get_side_effect_dispatcher()

    async with session_factory() as session:
        try:
            sweep = await TransactionsService.mark_overdue_as_pending(session)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Overdue sweep failed")
            raise

    await dispatcher.dispatch_many(sweep.events)
    return sweep.updated_count


def create_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=config.scheduler_timezone)
    scheduler.add_job(
        run_overdue_sweep,
        trigger=CronTrigger(
            hour=config.overdue_sweep_hour,
            minute=config.overdue_sweep_minute,
            timezone=config.scheduler_timezone,
        ),
        id=OVERDUE_JOB_ID,
        name="Mark overdue loans as pending",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=60 * 60,
    )
    return scheduler
