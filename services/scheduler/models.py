"""
Data models for the job scheduler service.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, validator


class SchedulerError(Exception):
    """Base class for scheduler errors."""
    pass


class SchedulerNotInitializedError(SchedulerError):
    """Raised when the scheduler is started before its schedule store is ready."""
    pass


class ScheduleValidationError(SchedulerError, ValueError):
    """Raised when a schedule record cannot be turned into timers."""

    def __init__(self, message: str, schedule_id: Optional[str] = None):
        super().__init__(message)
        self.schedule_id = schedule_id


class ScheduleNotFoundError(SchedulerError, LookupError):
    """Raised when a schedule record does not exist."""
    pass


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ScheduleRecord(BaseModel):
    """
    A persisted job schedule.

    Records come from an external source of truth and are not trusted:
    every field except the id may be missing or malformed. Checks that
    decide whether a record can be scheduled happen when it is classified,
    so one bad record never prevents the others from loading.
    """

    id: str = Field(..., description="Unique identifier of the schedule record")
    job_name: Optional[str] = Field(None, description="Name of the remote job to trigger")
    params: Optional[Dict[str, Any]] = Field(None, description="Payload passed through to the job")
    start_after: Optional[datetime] = Field(None, description="Earliest instant the schedule may fire (UTC)")
    repeat_minutes: Optional[int] = Field(None, description="Repeat interval in minutes; empty or 0 runs once")
    time_of_day: Optional[str] = Field(None, description="Phase anchor of the repeating cron, e.g. 09:30:00.000Z")
    days_of_week: Optional[List[bool]] = Field(None, description="Seven day flags, Monday first")

    @validator('start_after')
    def normalize_start_after(cls, v):
        return _as_utc(v)

    @property
    def is_repeating(self) -> bool:
        return bool(self.repeat_minutes) and self.repeat_minutes > 0


class ScheduleInput(BaseModel):
    """Input model for creating/updating schedules."""

    id: Optional[str] = Field(None, description="Optional schedule ID for updates")
    job_name: str = Field(..., description="Name of the remote job to trigger")
    params: Optional[Dict[str, Any]] = Field(None, description="Payload passed through to the job")
    start_after: datetime = Field(..., description="Earliest instant the schedule may fire")
    repeat_minutes: Optional[int] = Field(None, description="Repeat interval in minutes")
    time_of_day: Optional[str] = Field(None, description="Phase anchor of the repeating cron")
    days_of_week: Optional[List[bool]] = Field(None, description="Seven day flags, Monday first")

    @validator('job_name')
    def validate_job_name(cls, v):
        """Reject blank job names."""
        if not v or not v.strip():
            raise ValueError("job_name must not be empty")
        return v.strip()

    @validator('start_after')
    def normalize_start_after(cls, v):
        return _as_utc(v)

    @validator('repeat_minutes')
    def validate_repeat_minutes(cls, v):
        """Repeat interval must fit in a single day."""
        if v is None:
            return v
        if v < 0:
            raise ValueError("repeat_minutes must not be negative")
        if v >= 24 * 60:
            raise ValueError("repeat_minutes must be shorter than a day (1440 minutes)")
        return v

    @validator('days_of_week')
    def validate_days_of_week(cls, v):
        """Days of week must be empty or hold one flag per day."""
        if v and len(v) != 7:
            raise ValueError("days_of_week must contain exactly 7 entries")
        return v

    def to_record(self, schedule_id: str) -> ScheduleRecord:
        return ScheduleRecord(
            id=schedule_id,
            job_name=self.job_name,
            params=self.params,
            start_after=self.start_after,
            repeat_minutes=self.repeat_minutes,
            time_of_day=self.time_of_day,
            days_of_week=self.days_of_week,
        )


class SchedulePreview(BaseModel):
    """Schedule record with its cron expression and upcoming fire times."""

    schedule: ScheduleRecord
    cron_expr: Optional[str] = Field(None, description="Cron expression of the repeating timer")
    next_fire_times: List[datetime] = Field(..., description="Next fire times (UTC)")
