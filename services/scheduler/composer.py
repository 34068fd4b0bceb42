"""
Turns schedule records into the timers that run them.

Each record falls into one of four cases, decided when it is composed:

    in the past,   runs once    -> trigger now, delete the record, no timer
    in the past,   repeating    -> one started cron timer
    in the future, runs once    -> one started fire-once timer that triggers then deletes
    in the future, repeating    -> a started fire-once timer that starts an idle cron timer

A cron expression cannot say "not before this date", hence the two-timer
chain for future repeating schedules.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from .cron_utils import cron_expression_for_record
from .models import ScheduleRecord
from .run_launcher import RunLauncher
from .timers import FireCallback, Timer, TimerState

logger = logging.getLogger(__name__)

TimerFactory = Callable[[Union[datetime, str], FireCallback], Timer]


@dataclass(frozen=True)
class ScheduleCase:
    is_in_future: bool
    is_repeating: bool
    cron_expr: Optional[str] = None


class ScheduleComposer:
    """Classifies schedule records and builds their timers."""

    def __init__(
        self,
        timer_factory: TimerFactory,
        run_launcher: RunLauncher,
        store,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            timer_factory: Creates an idle timer from a datetime or cron expression and a callback
            run_launcher: Triggers jobs on the job server
            store: Schedule store, used to delete one-shot records once they ran
            clock: Returns the current UTC time
        """
        self.timer_factory = timer_factory
        self.run_launcher = run_launcher
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def classify(self, record: ScheduleRecord) -> ScheduleCase:
        """
        Decide which of the four cases a record falls into.

        Raises:
            ScheduleValidationError: If the record cannot be scheduled
        """
        cron_expr = cron_expression_for_record(record)
        return ScheduleCase(
            is_in_future=record.start_after > self.clock(),
            is_repeating=cron_expr is not None,
            cron_expr=cron_expr
        )

    async def compose_timers(self, record: ScheduleRecord) -> List[Timer]:
        """
        Build the timers for a record; the caller owns the result.

        Overdue one-shot records are triggered before this returns.

        Returns:
            No timer, one timer, or an outer fire-once and inner cron timer (outer first)
        """
        case = self.classify(record)

        if not case.is_in_future and not case.is_repeating:
            logger.info(f"Schedule {record.id} is overdue, running job {record.job_name} now")
            await self._perform_job(record)
            self._delete_record(record)
            return []

        if not case.is_in_future:
            timer = self.timer_factory(case.cron_expr, self._job_callback(record))
            timer.start()
            return [timer]

        if not case.is_repeating:
            async def run_once():
                await self._perform_job(record)
                if timer.state == TimerState.STOPPED:
                    # Stopped means newer timers own this schedule
                    logger.info(f"Schedule {record.id} changed while job {record.job_name} ran, keeping it")
                    return
                self._delete_record(record)

            timer = self.timer_factory(record.start_after, run_once)
            timer.start()
            return [timer]

        repeating_timer = self.timer_factory(case.cron_expr, self._job_callback(record))

        async def start_repeating():
            logger.info(f"Start the cron of schedule {record.id} ({case.cron_expr})")
            repeating_timer.start()

        start_timer = self.timer_factory(record.start_after, start_repeating)
        start_timer.start()
        return [start_timer, repeating_timer]

    def _job_callback(self, record: ScheduleRecord) -> FireCallback:
        async def run_job():
            await self._perform_job(record)
        return run_job

    async def _perform_job(self, record: ScheduleRecord) -> None:
        await self.run_launcher.trigger(record.job_name, record.params)

    def _delete_record(self, record: ScheduleRecord) -> None:
        try:
            self.store.destroy(record)
        except Exception as e:
            logger.error(f"Failed to delete one-shot schedule {record.id}: {e}")
