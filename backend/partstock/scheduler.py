"""
Maintenance Scheduler

Runs inventory housekeeping in-process with APScheduler:
- Daily maintenance (all types) at MAINTENANCE_HOUR:MAINTENANCE_MINUTE
- Reservation expiry sweep every RESERVATION_EXPIRY_INTERVAL_MINUTES

Only started when SCHEDULER_ENABLED is set.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from partstock.core.config import settings
from partstock.db.database import async_session
from partstock.services.maintenance import run_maintenance
from partstock.services.reservations import expire_stale

logger = logging.getLogger(__name__)


# ============================================================================
# Scheduler State
# ============================================================================

_scheduler: Optional[AsyncIOScheduler] = None
_last_maintenance: Optional[datetime] = None
_last_expiry_sweep: Optional[datetime] = None


def get_scheduler_status() -> dict:
    """Get current scheduler status."""
    jobs = []
    if _scheduler and _scheduler.running:
        for job in _scheduler.get_jobs():
            next_run = job.next_run_time
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })

    return {
        "enabled": settings.SCHEDULER_ENABLED,
        "running": _scheduler.running if _scheduler else False,
        "last_maintenance": _last_maintenance.isoformat() if _last_maintenance else None,
        "last_expiry_sweep": _last_expiry_sweep.isoformat() if _last_expiry_sweep else None,
        "scheduled_jobs": jobs,
    }


# ============================================================================
# Jobs
# ============================================================================

async def run_daily_maintenance() -> Dict[str, Any]:
    """Full maintenance pass; failures are logged, not raised into the scheduler."""
    global _last_maintenance

    logger.info("[Scheduler] Starting daily maintenance")
    try:
        async with async_session() as session:
            results = await run_maintenance(session, "all")
        _last_maintenance = datetime.utcnow()
        return {"status": "completed", **results}
    except Exception as e:
        logger.exception(f"[Scheduler] Daily maintenance failed: {e}")
        return {"status": "error", "error": str(e)}


async def run_expiry_sweep() -> Dict[str, Any]:
    """Cancel reservations whose expiry has passed."""
    global _last_expiry_sweep

    try:
        async with async_session() as session:
            expired = await expire_stale(session)
        _last_expiry_sweep = datetime.utcnow()
        if expired:
            logger.info(f"[Scheduler] Expired {expired} reservations")
        return {"status": "completed", "expired_count": expired}
    except Exception as e:
        logger.exception(f"[Scheduler] Expiry sweep failed: {e}")
        return {"status": "error", "error": str(e)}


# ============================================================================
# Scheduler Setup & Shutdown
# ============================================================================

def setup_scheduler(
    hour: int = None,
    minute: int = None,
    expiry_interval_minutes: int = None,
) -> AsyncIOScheduler:
    """
    Initialize and start the maintenance scheduler.

    Args:
        hour: Hour of the daily maintenance run (0-23)
        minute: Minute of the daily maintenance run (0-59)
        expiry_interval_minutes: How often to sweep expired reservations
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("[Scheduler] Scheduler already running")
        return _scheduler

    hour = settings.MAINTENANCE_HOUR if hour is None else hour
    minute = settings.MAINTENANCE_MINUTE if minute is None else minute
    interval = expiry_interval_minutes or settings.RESERVATION_EXPIRY_INTERVAL_MINUTES

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        run_daily_maintenance,
        CronTrigger(hour=hour, minute=minute),
        id="daily_maintenance",
        name="Daily Inventory Maintenance",
        replace_existing=True,
    )

    _scheduler.add_job(
        run_expiry_sweep,
        IntervalTrigger(minutes=interval),
        id="reservation_expiry",
        name="Reservation Expiry Sweep",
        replace_existing=True,
    )

    _scheduler.start()

    logger.info(f"[Scheduler] Started: maintenance at {hour:02d}:{minute:02d}, expiry sweep every {interval}m")
    return _scheduler


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        logger.info("[Scheduler] Scheduler shutdown")

    _scheduler = None


async def trigger_job(job_id: str) -> Dict[str, Any]:
    """
    Manually trigger a scheduled job.

    Args:
        job_id: "daily_maintenance" or "reservation_expiry"
    """
    if job_id == "daily_maintenance":
        return await run_daily_maintenance()
    elif job_id == "reservation_expiry":
        return await run_expiry_sweep()
    else:
        return {"status": "error", "message": f"Unknown job: {job_id}"}
