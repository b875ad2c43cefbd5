"""Background scheduler for periodic tasks"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from datetime import timedelta
from app.config import settings
import logging

logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()


def start_scheduler():
    """Start the background scheduler"""
    try:
        scheduler.add_job(
            evict_idle_sessions,
            'interval',
            minutes=settings.SESSION_SWEEP_INTERVAL_MINUTES,
            id='evict_idle_sessions',
            replace_existing=True,
        )
        scheduler.start()
        logger.info("Scheduler started successfully")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop the background scheduler"""
    try:
        if scheduler.running:
            scheduler.shutdown()
        logger.info("Scheduler stopped successfully")
    except Exception as e:
        logger.error(f"Failed to stop scheduler: {e}")


async def evict_idle_sessions():
    """
    Drop vault sessions (optimistic state and cached uploads) that have been
    idle longer than SESSION_IDLE_TIMEOUT_MINUTES
    """
    from app.services.vault_session import session_registry

    try:
        evicted = session_registry.evict_idle(timedelta(minutes=settings.SESSION_IDLE_TIMEOUT_MINUTES))
        if evicted:
            logger.info(f"Evicted {evicted} idle vault sessions, {len(session_registry)} remaining")
    except Exception as e:
        logger.error(f"Error during session eviction: {e}")
