"""
Scheduler Registrar for managing schedule records.

Writes go through the schedule store; the worker picks them up from the
store's change notifications.
"""

from typing import Optional, Dict, Any, List
import logging

from .models import (
    ScheduleInput,
    ScheduleNotFoundError,
    SchedulePreview,
    ScheduleRecord,
    ScheduleValidationError,
)
from .database import SchedulerDatabase
from .cron_utils import cron_expression_for_record, next_fire_times

logger = logging.getLogger(__name__)


class SchedulerRegistrar:
    """Handles schedule registration, updates, and removal."""

    def __init__(self, db: SchedulerDatabase):
        """Initialize the registrar with a database connection."""
        self.db = db

    def upsert_schedule(self, input_data: ScheduleInput) -> Dict[str, Any]:
        """
        Insert or update a schedule.

        Args:
            input_data: Schedule input data

        Returns:
            Dict with the schedule id and the cron expression of its repeating timer

        Raises:
            ScheduleValidationError: If the schedule cannot be turned into timers
        """
        schedule_id = input_data.id or self.db.generate_id()
        record = input_data.to_record(schedule_id)

        # Reject what the worker would reject before it reaches the store
        cron_expr = cron_expression_for_record(record)

        self.db.upsert(record)
        logger.info(f"Schedule {schedule_id} for job {record.job_name} registered")

        return {"id": schedule_id, "cron_expr": cron_expr}

    def delete_schedule(self, schedule_id: str) -> None:
        """
        Delete a schedule.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist
        """
        if not self.db.delete(schedule_id):
            raise ScheduleNotFoundError(f"Schedule {schedule_id} not found")

    def get_schedule(self, schedule_id: str, count: int = 5) -> Optional[SchedulePreview]:
        """
        Get a schedule with a preview of its next fire times.

        Returns:
            SchedulePreview, or None if the schedule does not exist
        """
        record = self.db.get(schedule_id)
        if record is None:
            return None

        try:
            cron_expr = cron_expression_for_record(record)
            fire_times = next_fire_times(record, count)
        except ScheduleValidationError as e:
            logger.warning(f"Schedule {schedule_id} cannot be scheduled: {e}")
            cron_expr, fire_times = None, []

        return SchedulePreview(
            schedule=record,
            cron_expr=cron_expr,
            next_fire_times=fire_times
        )

    def list_schedules(self, job_name: Optional[str] = None, limit: int = 100) -> List[ScheduleRecord]:
        """List schedules, optionally only those of one job."""
        schedules = [
            record for record in self.db.find_all()
            if job_name is None or record.job_name == job_name
        ]
        return schedules[:limit]
