"""
In-memory registry of the timers owned by each schedule record.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from .timers import Timer

logger = logging.getLogger(__name__)


class TimerRegistry:
    """
    Maps schedule ids to the live timers scheduled for them.

    The registry owns every timer it holds. Replacing or destroying an entry
    stops all of its timers, so a schedule never has two timer chains
    active at once.
    """

    def __init__(self):
        self._entries: Dict[str, List[Timer]] = {}

    def set(self, schedule_id: str, timers: Iterable[Timer]) -> None:
        """Replace the timers of a schedule. An empty set leaves no entry."""
        self.destroy(schedule_id)

        timers = list(timers)
        if timers:
            self._entries[schedule_id] = timers

    def destroy(self, schedule_id: str) -> None:
        """Stop and forget the timers of a schedule. Unknown ids are ignored."""
        timers = self._entries.pop(schedule_id, None)
        if not timers:
            return

        for timer in timers:
            try:
                timer.stop()
            except Exception as e:
                logger.error(f"Failed to stop timer {timer!r} of schedule {schedule_id}: {e}")

    def destroy_all(self) -> None:
        """Stop every timer and empty the registry."""
        for schedule_id in list(self._entries):
            self.destroy(schedule_id)
        self._entries = {}

    def list(self) -> List[str]:
        return list(self._entries)

    def get(self, schedule_id: str) -> Tuple[Timer, ...]:
        return tuple(self._entries.get(schedule_id, ()))

    def __contains__(self, schedule_id: str) -> bool:
        return schedule_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
