"""
Job Scheduler Service

Turns stored job schedules into timers and triggers the named jobs on the
remote job server when they fire.
"""

from .composer import ScheduleComposer
from .cron_utils import build_cron_expression
from .database import SchedulerDatabase
from .models import (
    ScheduleInput,
    ScheduleNotFoundError,
    ScheduleRecord,
    SchedulerError,
    SchedulerNotInitializedError,
    ScheduleValidationError,
)
from .registrar import SchedulerRegistrar
from .registry import TimerRegistry
from .run_launcher import RunLauncher
from .timers import Timer, create_timer
from .worker import SchedulerWorker

__all__ = [
    "ScheduleComposer",
    "build_cron_expression",
    "SchedulerDatabase",
    "ScheduleInput",
    "ScheduleNotFoundError",
    "ScheduleRecord",
    "SchedulerError",
    "SchedulerNotInitializedError",
    "ScheduleValidationError",
    "SchedulerRegistrar",
    "TimerRegistry",
    "RunLauncher",
    "Timer",
    "create_timer",
    "SchedulerWorker",
]
