"""
Scheduler Worker that keeps live timers in sync with the stored schedules.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .composer import ScheduleComposer
from .database import SchedulerDatabase
from .models import ScheduleNotFoundError, ScheduleRecord, SchedulerNotInitializedError
from .registry import TimerRegistry

logger = logging.getLogger(__name__)


class SchedulerWorker:
    """
    Rebuilds timers from the schedule store and follows its changes.

    On start every stored schedule is scheduled from scratch, then saved and
    deleted records are applied one at a time as the store reports them.
    """

    def __init__(
        self,
        db: SchedulerDatabase,
        composer: ScheduleComposer,
        registry: Optional[TimerRegistry] = None,
        scheduler: Optional[AsyncIOScheduler] = None
    ):
        """
        Initialize the scheduler worker.

        Args:
            db: Schedule store
            composer: Builds the timers of a schedule record
            registry: Registry of live timers; a new one is created if omitted
            scheduler: APScheduler instance the timers run on, started and shut down with the worker
        """
        self.db = db
        self.composer = composer
        self.registry = registry if registry is not None else TimerRegistry()
        self.scheduler = scheduler

        self.running = False
        self._subscription: Optional[int] = None
        # Held by every registry mutation so changes to one id never interleave
        self._lock = asyncio.Lock()

    async def start(self):
        """
        Schedule every stored record and subscribe to changes.

        Raises:
            SchedulerNotInitializedError: If the schedule store is not initialized
        """
        if self.running:
            logger.warning("Worker is already running")
            return

        if not getattr(self.db, "initialized", False):
            raise SchedulerNotInitializedError("Schedule database is not initialized")

        if self.scheduler is not None and not self.scheduler.running:
            self.scheduler.start()

        await self.recreate_all_schedules()

        self._subscription = self.db.subscribe(
            on_save=self._on_schedule_saved,
            on_delete=self._on_schedule_deleted
        )
        self.running = True
        logger.info("Scheduler worker started")

    async def stop(self):
        """Stop every timer. No timer fires after this returns."""
        if self._subscription is not None:
            self.db.unsubscribe(self._subscription)
            self._subscription = None

        async with self._lock:
            self.registry.destroy_all()

            if self.scheduler is not None and self.scheduler.running:
                self.scheduler.shutdown(wait=False)

            if self.running:
                self.running = False
                logger.info("Scheduler worker stopped")

    async def recreate_all_schedules(self) -> int:
        """
        Rebuild the timers of every stored schedule.

        A record that fails to schedule is logged and skipped.

        Returns:
            Number of schedules with live timers
        """
        async with self._lock:
            records = self.db.find_all()

            self.registry.destroy_all()

            for record in records:
                try:
                    await self._replace_timers(record)
                except Exception as e:
                    logger.error(f"Failed to schedule job {record.id}: {e}")

            scheduled = len(self.registry)
        logger.info(f"{scheduled} job(s) scheduled.")
        return scheduled

    async def recreate_schedule(self, record: ScheduleRecord) -> None:
        """
        Replace the timers of one schedule.

        Raises:
            ScheduleValidationError: If the record cannot be scheduled; its old timers are gone
        """
        async with self._lock:
            await self._replace_timers(record)

    async def recreate_schedule_by_id(self, schedule_id: str) -> None:
        """
        Load a schedule from the store and replace its timers.

        Raises:
            ScheduleNotFoundError: If no schedule has this id
        """
        record = self.db.get(schedule_id)
        if record is None:
            raise ScheduleNotFoundError(f"No schedule was found with id {schedule_id}")
        await self.recreate_schedule(record)

    async def destroy_schedule(self, schedule_id: str) -> None:
        """Stop the timers of one schedule."""
        async with self._lock:
            self.registry.destroy(schedule_id)

    async def _replace_timers(self, record: ScheduleRecord) -> None:
        self.registry.destroy(record.id)
        timers = await self.composer.compose_timers(record)
        self.registry.set(record.id, timers)

    async def _on_schedule_saved(self, record: ScheduleRecord) -> None:
        async with self._lock:
            if not self.running:
                return
            try:
                await self._replace_timers(record)
            except Exception as e:
                logger.error(f"Failed to reschedule job {record.id}: {e}")

    async def _on_schedule_deleted(self, record: ScheduleRecord) -> None:
        await self.destroy_schedule(record.id)

    def get_status(self) -> Dict[str, Any]:
        """Get the current status of the worker."""
        return {
            "running": self.running,
            "scheduled_jobs": len(self.registry),
            "schedules": {
                schedule_id: len(self.registry.get(schedule_id))
                for schedule_id in self.registry.list()
            }
        }
