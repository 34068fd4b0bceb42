"""
Timers backed by APScheduler's ``AsyncIOScheduler``.

A timer is either fire-once (armed for a datetime) or repeating (driven by a
six-field cron expression). Timers are created idle and only reach the
scheduler when ``start()`` is called. Callbacks run on the scheduler's event
loop, one at a time.

A fire-once timer is ``fired`` once it goes off; ``stopped`` only ever
follows a call to ``stop()``.
"""

import enum
import itertools
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

FireCallback = Callable[[], Awaitable[None]]

# Cron numbering (0 = Sunday); APScheduler's own numbering starts at Monday
DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

_timer_ids = itertools.count(1)


class TimerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    FIRED = "fired"
    STOPPED = "stopped"


def _day_of_week_names(field: str) -> str:
    """Rewrite numeric cron days (``1-5``, ``2,4``, ``*/2``) as day names."""
    parts = []
    for part in field.split(","):
        base, _, step = part.partition("/")
        if base != "*":
            base = "-".join(DAY_NAMES[int(day) % 7] for day in base.split("-"))
        parts.append(f"{base}/{step}" if step else base)
    return ",".join(parts)


def cron_trigger_from_expression(expression: str, timezone: str = "UTC") -> CronTrigger:
    """
    Build an APScheduler trigger from a six-field cron expression.

    Raises:
        ValueError: If the expression does not have six fields or a field is invalid
    """
    fields = expression.split()
    if len(fields) != 6:
        raise ValueError(f"Expected 6 cron fields, got {len(fields)}: {expression!r}")

    second, minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_day_of_week_names(day_of_week),
        timezone=timezone
    )


class Timer:
    """A single fire-once or repeating timer."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        trigger: Union[datetime, str],
        on_fire: FireCallback,
        name: Optional[str] = None,
        timezone: str = "UTC"
    ):
        self.scheduler = scheduler
        self.on_fire = on_fire
        self.repeating = isinstance(trigger, str)
        self.name = name or f"timer-{next(_timer_ids)}"
        self.state = TimerState.IDLE
        self._job = None

        if self.repeating:
            self.cron_expr = trigger
            self.run_at = None
            self._trigger = cron_trigger_from_expression(trigger, timezone)
        else:
            self.cron_expr = None
            self.run_at = trigger
            self._trigger = DateTrigger(run_date=trigger, timezone=timezone)

    @property
    def running(self) -> bool:
        return self.state is TimerState.RUNNING

    def start(self) -> None:
        """Hand the timer to the scheduler. Starting a running timer does nothing."""
        if self.running:
            return

        self._job = self.scheduler.add_job(
            self._fire,
            self._trigger,
            name=self.name,
            misfire_grace_time=None,
            coalesce=True
        )
        self.state = TimerState.RUNNING
        logger.debug(f"Timer {self.name} started ({self.cron_expr or self.run_at})")

    def stop(self) -> None:
        """Remove the timer from the scheduler. Safe to call in any state."""
        if self._job is not None:
            try:
                self._job.remove()
            except JobLookupError:
                # Fire-once jobs are dropped by the scheduler after firing
                pass
            self._job = None

        if self.state is TimerState.RUNNING:
            logger.debug(f"Timer {self.name} stopped")
        self.state = TimerState.STOPPED

    async def _fire(self) -> None:
        if not self.repeating:
            self.state = TimerState.FIRED
            self._job = None

        try:
            await self.on_fire()
        except Exception as e:
            logger.error(f"Timer {self.name} callback failed: {e}")

    def __repr__(self) -> str:
        return f"<Timer {self.name} {self.state.value} {self.cron_expr or self.run_at}>"


def create_timer(
    scheduler: AsyncIOScheduler,
    trigger: Union[datetime, str],
    on_fire: FireCallback,
    name: Optional[str] = None
) -> Timer:
    """Create an idle timer; the caller must call ``start()``."""
    return Timer(scheduler, trigger, on_fire, name=name)
