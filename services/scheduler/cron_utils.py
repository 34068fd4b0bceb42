"""
Utility functions for building cron expressions from schedule records.

Every expression produced here has six fields
(second minute hour day-of-month month day-of-week) and is evaluated in UTC.
Day-of-week numbers follow cron: 0 is Sunday.
"""

from datetime import date, datetime, time, timezone
from typing import List, Optional, Sequence
import logging

from pydantic import TypeAdapter, ValidationError

from .models import ScheduleRecord, ScheduleValidationError
from .timers import cron_trigger_from_expression

logger = logging.getLogger(__name__)

_TIME_OF_DAY = TypeAdapter(time)


def parse_time_of_day(value: Optional[str]) -> time:
    """
    Parse a time of day such as ``09:30``, ``09:30:00.000Z`` or ``11:30:00+02:00``.

    Values without an offset are taken as UTC. The result is converted to
    UTC. A missing value anchors at midnight UTC.

    Raises:
        ScheduleValidationError: If the value is not a valid time of day
    """
    if value is None or not str(value).strip():
        return time(0, 0, 0, tzinfo=timezone.utc)

    try:
        parsed = _TIME_OF_DAY.validate_python(str(value).strip())
    except ValidationError as e:
        raise ScheduleValidationError(f"Invalid time of day: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    # Anchor on an arbitrary date so the offset can be applied
    anchored = datetime.combine(date(2000, 1, 1), parsed).astimezone(timezone.utc)
    return anchored.timetz()


def days_of_week_to_cron(days_of_week: Sequence[bool]) -> str:
    """
    Convert seven day flags (Monday first) to a cron day-of-week list.

    Index ``i`` maps to cron day ``(i + 1) % 7``, so Monday becomes 1 and
    Sunday becomes 0.
    """
    return ",".join(
        str((index + 1) % 7)
        for index, enabled in enumerate(days_of_week)
        if enabled
    )


def build_cron_expression(
    time_of_day: time,
    days_of_week: Optional[Sequence[bool]],
    repeat_minutes: int
) -> str:
    """
    Build the six-field cron expression of a repeating schedule.

    The minute and hour fields are ranges starting at ``time_of_day`` and
    stepping by the minute and hour parts of ``repeat_minutes``.

    Args:
        time_of_day: Phase anchor, in UTC
        days_of_week: Optional seven day flags, Monday first
        repeat_minutes: Repeat interval in minutes

    Returns:
        Cron expression such as ``0 30-59/15 9-23/2 * * 1,3``

    Raises:
        ScheduleValidationError: If the interval is not positive or spans a day or more
    """
    if not repeat_minutes or repeat_minutes <= 0:
        raise ScheduleValidationError(f"repeat_minutes must be a positive integer, got {repeat_minutes!r}")

    minutes = repeat_minutes % 60
    hours = repeat_minutes // 60
    if hours >= 24:
        raise ScheduleValidationError(
            f"repeat_minutes={repeat_minutes} spans {hours} hours; intervals of a day or more cannot be expressed"
        )

    if minutes:
        minute_field = f"{time_of_day.minute}-59/{minutes}"
    else:
        minute_field = "0"

    hour_field = f"{time_of_day.hour}-23"
    if hours:
        hour_field += f"/{hours}"

    day_of_week_field = days_of_week_to_cron(days_of_week) if days_of_week else "*"

    return " ".join(["0", minute_field, hour_field, "*", "*", day_of_week_field])


def cron_expression_for_record(record: ScheduleRecord) -> Optional[str]:
    """
    Validate a record and return the cron expression of its repeating timer.

    Returns None for one-shot records.

    Raises:
        ScheduleValidationError: If the record cannot be scheduled
    """
    if not record.job_name or not record.job_name.strip():
        raise ScheduleValidationError(f"Schedule {record.id} has no job name", record.id)

    if record.start_after is None:
        raise ScheduleValidationError(f"Schedule {record.id} has no valid start_after", record.id)

    if record.repeat_minutes is not None and record.repeat_minutes < 0:
        raise ScheduleValidationError(
            f"Schedule {record.id} has a negative repeat interval: {record.repeat_minutes}", record.id
        )

    if not record.is_repeating:
        return None

    days_of_week = record.days_of_week or None
    if days_of_week is not None:
        if len(days_of_week) != 7:
            raise ScheduleValidationError(
                f"Schedule {record.id} has {len(days_of_week)} day-of-week flags, expected 7", record.id
            )
        if not any(days_of_week):
            raise ScheduleValidationError(f"Schedule {record.id} selects no day of the week", record.id)

    try:
        return build_cron_expression(
            parse_time_of_day(record.time_of_day),
            days_of_week,
            record.repeat_minutes
        )
    except ScheduleValidationError as e:
        raise ScheduleValidationError(f"Schedule {record.id}: {e}", record.id) from e


def next_fire_times(
    record: ScheduleRecord,
    count: int = 5,
    now: Optional[datetime] = None
) -> List[datetime]:
    """
    Calculate the next fire times of a schedule record.

    Uses the same trigger the repeating timer runs on, starting no earlier
    than the record's start_after.
    """
    now = now or datetime.now(timezone.utc)
    cron_expr = cron_expression_for_record(record)

    if cron_expr is None:
        return [record.start_after] if record.start_after > now else []

    trigger = cron_trigger_from_expression(cron_expr)
    current = max(now, record.start_after)
    previous = None
    times = []

    for _ in range(count):
        fire_time = trigger.get_next_fire_time(previous, current)
        if fire_time is None:
            break
        times.append(fire_time)
        previous = current = fire_time

    return times
