"""
Database interface for the job scheduler service.

Holds the schedule records and notifies subscribers after every committed
change. Notifications are delivered on the subscriber's event loop by a
single dispatcher task, one at a time and in commit order.
"""

import asyncio
import itertools
import json
import sqlite3
import uuid
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
import logging

from pydantic import ValidationError

from .models import ScheduleRecord

logger = logging.getLogger(__name__)

RecordCallback = Callable[[ScheduleRecord], Awaitable[None]]

SAVED = "saved"
DELETED = "deleted"

_COLUMNS = "id, job_name, params, start_after, repeat_minutes, time_of_day, days_of_week"


class SchedulerDatabase:
    """SQLite store for schedule records with change notifications."""

    def __init__(self, db_path: str = "scheduler.db"):
        """Initialize the database connection."""
        self.db_path = db_path
        self.initialized = False

        self._listeners: Dict[int, Tuple[RecordCallback, RecordCallback]] = {}
        self._tokens = itertools.count(1)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None

        self._init_database()

    def _init_database(self):
        """Initialize database tables if they don't exist."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS job_schedules (
                        id TEXT PRIMARY KEY,
                        job_name TEXT,
                        params TEXT,
                        start_after TEXT,
                        repeat_minutes INTEGER,
                        time_of_day TEXT,
                        days_of_week TEXT,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.execute("CREATE INDEX IF NOT EXISTS idx_job_schedules_job_name ON job_schedules(job_name)")
                conn.commit()

            self.initialized = True
            logger.info(f"Schedule database initialized at {self.db_path}")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    # Row conversion

    def _datetime_to_str(self, dt: Optional[datetime]) -> Optional[str]:
        """Convert datetime to ISO string for storage."""
        if dt is None:
            return None
        return dt.isoformat()

    def _str_to_datetime(self, dt_str: Optional[str]) -> Optional[datetime]:
        """Convert ISO string to datetime; unparseable values become None."""
        if not dt_str:
            return None
        try:
            return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
        except ValueError:
            return None

    def _load_json(self, value: Optional[str], column: str, schedule_id: str) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Schedule {schedule_id} has invalid JSON in {column}, ignoring it")
            return None

    def _row_to_record(self, row) -> ScheduleRecord:
        return ScheduleRecord(
            id=row[0],
            job_name=row[1],
            params=self._load_json(row[2], "params", row[0]),
            start_after=self._str_to_datetime(row[3]),
            repeat_minutes=row[4],
            time_of_day=row[5],
            days_of_week=self._load_json(row[6], "days_of_week", row[0])
        )

    # Queries

    def find_all(self) -> List[ScheduleRecord]:
        """Get every schedule record. Rows that cannot be read are logged and skipped."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM job_schedules ORDER BY created_at ASC"
                ).fetchall()
        except Exception as e:
            logger.error(f"Failed to list schedules: {e}")
            raise

        records = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except ValidationError as e:
                logger.error(f"Skipping unreadable schedule {row[0]}: {e}")
        return records

    def get(self, schedule_id: str) -> Optional[ScheduleRecord]:
        """Get a schedule record by ID."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM job_schedules WHERE id = ?",
                    (schedule_id,)
                ).fetchone()

            return self._row_to_record(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get schedule {schedule_id}: {e}")
            raise

    # Writes

    def generate_id(self) -> str:
        return uuid.uuid4().hex[:10]

    def upsert(self, record: ScheduleRecord) -> ScheduleRecord:
        """Insert or update a schedule record."""
        now = self._datetime_to_str(datetime.now(timezone.utc))
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(f"""
                    INSERT INTO job_schedules ({_COLUMNS}, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        job_name = excluded.job_name,
                        params = excluded.params,
                        start_after = excluded.start_after,
                        repeat_minutes = excluded.repeat_minutes,
                        time_of_day = excluded.time_of_day,
                        days_of_week = excluded.days_of_week,
                        updated_at = excluded.updated_at
                """, (
                    record.id,
                    record.job_name,
                    json.dumps(record.params) if record.params is not None else None,
                    self._datetime_to_str(record.start_after),
                    record.repeat_minutes,
                    record.time_of_day,
                    json.dumps(record.days_of_week) if record.days_of_week is not None else None,
                    now,
                    now
                ))
                conn.commit()

        except Exception as e:
            logger.error(f"Failed to upsert schedule {record.id}: {e}")
            raise

        logger.info(f"Schedule {record.id} saved")
        self._notify(SAVED, record)
        return record

    def delete(self, schedule_id: str) -> bool:
        """Delete a schedule record. Returns False if it did not exist."""
        record = self.get(schedule_id)
        if record is None:
            return False

        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM job_schedules WHERE id = ?", (schedule_id,))
                conn.commit()

        except Exception as e:
            logger.error(f"Failed to delete schedule {schedule_id}: {e}")
            raise

        logger.info(f"Schedule {schedule_id} deleted")
        self._notify(DELETED, record)
        return True

    def destroy(self, record: ScheduleRecord) -> bool:
        """Delete the given record."""
        return self.delete(record.id)

    # Notifications

    def subscribe(self, on_save: RecordCallback, on_delete: RecordCallback) -> int:
        """
        Register callbacks for saved and deleted records.

        Must be called from a running event loop; callbacks run on that loop.

        Returns:
            Token to pass to ``unsubscribe``
        """
        loop = asyncio.get_running_loop()
        if self._dispatcher is None or self._dispatcher.done() or self._loop is not loop:
            self._loop = loop
            self._queue = asyncio.Queue()
            self._dispatcher = loop.create_task(self._dispatch_loop())

        token = next(self._tokens)
        self._listeners[token] = (on_save, on_delete)
        return token

    def unsubscribe(self, token: int) -> None:
        self._listeners.pop(token, None)

    def _notify(self, event: str, record: ScheduleRecord) -> None:
        if not self._listeners or self._loop is None:
            return
        try:
            # Writes may come from other threads; the queue belongs to the loop
            self._loop.call_soon_threadsafe(self._queue.put_nowait, (event, record))
        except RuntimeError as e:
            logger.error(f"Dropped {event} notification for schedule {record.id}: {e}")

    async def _dispatch_loop(self) -> None:
        while True:
            event, record = await self._queue.get()
            try:
                for on_save, on_delete in list(self._listeners.values()):
                    callback = on_save if event == SAVED else on_delete
                    try:
                        await callback(record)
                    except Exception as e:
                        logger.error(f"Failed to handle {event} notification for schedule {record.id}: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every notification queued so far has been delivered."""
        if self._queue is None:
            return
        # Handlers may queue further notifications; yield so their puts land
        while True:
            await asyncio.sleep(0)
            await self._queue.join()
            await asyncio.sleep(0)
            if self._queue.empty():
                return

    async def close(self) -> None:
        """Stop delivering notifications."""
        self._listeners.clear()
        if self._dispatcher is not None:
            self._dispatcher.cancel()
            with suppress(asyncio.CancelledError):
                await self._dispatcher
            self._dispatcher = None
        self._loop = None
        self._queue = None
