"""
Recurring Bol.com order sync.

One interval job runs inside the FastAPI process (AsyncIOScheduler). Each
cycle reconciles every installation that has an active bol.com integration,
one after another. A cycle that fires while the previous one is still running
is skipped, not queued.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select

from app.core.config import get_settings, parse_interval_minutes
from app.core.enums import PlatformName
from app.database import async_session
from app.dependencies import get_bol_client
from app.models.integration import Integration
from app.services.bol.client import BolClient
from app.services.bol.sync import BolOrderSyncService

logger = logging.getLogger(__name__)

JOB_ID = "bol_order_sync"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncCycleSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    results: Dict[int, Dict[str, int]] = field(default_factory=dict)
    errors: Dict[int, str] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "installations": len(self.results) + len(self.errors),
            "results": {str(k): v for k, v in self.results.items()},
            "errors": {str(k): v for k, v in self.errors.items()},
            "error": self.error,
        }


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed at {datetime.now()}")


class BolSyncScheduler:
    """
    Owns the sync timer and the reentrancy flag.

    Args:
        session_factory: Callable returning an AsyncSession (one per installation)
        client_factory: Callable returning the BolClient used for a cycle
        interval_minutes: Minutes between cycles; invalid values fall back to 5
    """

    def __init__(
        self,
        session_factory: Callable = async_session,
        client_factory: Optional[Callable[[], BolClient]] = None,
        interval_minutes: Any = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.session_factory = session_factory
        self.client_factory = client_factory or (lambda: BolClient.from_settings(get_settings()))
        self.interval_minutes = parse_interval_minutes(interval_minutes)
        self._scheduler = scheduler
        self._running = False
        self.last_cycle: Optional[SyncCycleSummary] = None

    @property
    def running(self) -> bool:
        """True while a cycle is in progress"""
        return self._running

    @property
    def started(self) -> bool:
        return bool(self._scheduler and self._scheduler.running and self._scheduler.get_job(JOB_ID))

    def _remove_job(self) -> None:
        if self._scheduler and self._scheduler.get_job(JOB_ID):
            self._scheduler.remove_job(JOB_ID)

    def start(self) -> None:
        """Install the interval job (first run immediately) and start the scheduler"""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
            self._scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

        self._remove_job()
        self._scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            name="Bol.com order sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=_now(),
        )

        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Bol.com order sync scheduled every {self.interval_minutes} minute(s)")

    def stop(self) -> None:
        """Remove the job and shut the scheduler down"""
        self._remove_job()
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Bol.com sync scheduler stopped")
        self._scheduler = None

    def reschedule(self, interval_minutes: Any) -> None:
        self.interval_minutes = parse_interval_minutes(interval_minutes)
        if self.started:
            self.start()

    async def installations_to_sync(self) -> List[int]:
        """Distinct installations with at least one active bol.com integration"""
        stmt = (
            select(Integration.installation_id)
            .where(
                Integration.platform == PlatformName.BOL.value,
                Integration.active.is_(True),
            )
            .distinct()
            .order_by(Integration.installation_id)
        )
        async with self.session_factory() as db:
            return list((await db.execute(stmt)).scalars().all())

    async def run_cycle(self) -> Optional[SyncCycleSummary]:
        """
        Reconcile every eligible installation sequentially.

        Returns None without doing anything when a cycle is already running.
        A failing installation is logged and recorded; the loop continues.
        """
        if self._running:
            logger.info("Bol.com sync cycle already running, skipping this run")
            return None

        self._running = True
        summary = SyncCycleSummary(started_at=_now())
        logger.info("=== BOL.COM ORDER SYNC STARTING ===")

        try:
            installation_ids = await self.installations_to_sync()
            logger.info(f"Found {len(installation_ids)} installation(s) with an active Bol.com integration")

            client = self.client_factory()
            for installation_id in installation_ids:
                try:
                    async with self.session_factory() as db:
                        result = await BolOrderSyncService(db, client).reconcile(installation_id)
                    summary.results[installation_id] = result.to_dict()
                except Exception as e:  # noqa: BLE001
                    logger.error(f"Bol.com sync failed for installation {installation_id}: {str(e)}")
                    summary.errors[installation_id] = str(e)
        except Exception as e:
            logger.exception(f"Error in Bol.com sync cycle: {str(e)}")
            summary.error = str(e)
        finally:
            summary.finished_at = _now()
            self.last_cycle = summary
            self._running = False

        logger.info(
            f"Bol.com sync cycle finished: {len(summary.results)} succeeded, {len(summary.errors)} failed"
        )
        return summary

    def status(self) -> Dict[str, Any]:
        job = self._scheduler.get_job(JOB_ID) if self._scheduler else None
        return {
            "status": "running" if self.started else "stopped",
            "cycle_running": self._running,
            "interval_minutes": self.interval_minutes,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "last_cycle": self.last_cycle.to_dict() if self.last_cycle else None,
        }


# Process-wide instance
sync_scheduler: Optional[BolSyncScheduler] = None


def get_sync_scheduler() -> BolSyncScheduler:
    global sync_scheduler

    if sync_scheduler is None:
        settings = get_settings()
        sync_scheduler = BolSyncScheduler(
            session_factory=async_session,
            client_factory=get_bol_client,
            interval_minutes=settings.BOL_SYNC_INTERVAL_MINUTES,
        )
    return sync_scheduler
