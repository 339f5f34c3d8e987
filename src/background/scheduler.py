"""Session auto-refresh scheduling using APScheduler.

등록 작업:
- session_refresh: SESSION_REFRESH_INTERVAL_SECONDS 간격으로 만료 임박 세션을 갱신

AUTO_REFRESH_TOKEN이 꺼져 있으면 스케줄러를 띄우지 않으며,
이 경우 갱신은 HTTP 클라이언트의 401 처리에서만 일어납니다.
"""
import logging
from typing import Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.auth.store import SessionStore
from src.background.tasks import session_refresh_task
from src.server.settings import settings

logger = logging.getLogger(__name__)

SESSION_REFRESH_JOB_ID = "session_refresh"
MIN_REFRESH_INTERVAL_SECONDS = 5

TASKS: Dict[str, Callable[[SessionStore], Awaitable[bool]]] = {
    SESSION_REFRESH_JOB_ID: session_refresh_task,
}

# 프로세스 전역 스케줄러
scheduler: Optional[AsyncIOScheduler] = None


def init_scheduler(store: SessionStore) -> AsyncIOScheduler:
    """Create the scheduler and register the session refresh job for ``store``."""
    global scheduler

    if scheduler is not None:
        logger.warning("Session scheduler already exists; reusing it")
        return scheduler

    interval = max(MIN_REFRESH_INTERVAL_SECONDS, settings.SESSION_REFRESH_INTERVAL_SECONDS)
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        session_refresh_task,
        trigger=IntervalTrigger(seconds=interval),
        args=[store],
        id=SESSION_REFRESH_JOB_ID,
        name="Session Refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info("Session refresh job registered (every %ss)", interval)
    return scheduler


def start_scheduler(store: SessionStore) -> None:
    if not settings.AUTO_REFRESH_TOKEN:
        logger.info("Automatic token refresh disabled")
        return

    current = init_scheduler(store)
    if current.running:
        return

    current.start()
    job = current.get_job(SESSION_REFRESH_JOB_ID)
    logger.info("Session scheduler started; next refresh check at %s", job.next_run_time if job else None)


def shutdown_scheduler() -> None:
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Session scheduler stopped")
    scheduler = None


async def run_task_now(task_name: str, store: SessionStore) -> None:
    """Run a registered task immediately, outside the interval trigger.

    Args:
        task_name: TASKS 키 (예: "session_refresh")
    """
    task = TASKS.get(task_name)
    if task is None:
        logger.error("Unknown session task: %s", task_name)
        return

    logger.info("Running session task %s on demand", task_name)
    await task(store)
