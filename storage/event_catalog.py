"""Read access to the stored event catalog for the display layer."""
import logging
from datetime import date, timedelta
from typing import List, Optional

from processor.models import NormalizedEvent
from storage.base import KeyValueStore
from storage.event_store import event_key, partition_key

logger = logging.getLogger(__name__)


class EventCatalog:
    """Queries day partitions written by EventStoreWriter."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_events_by_date_range(self, start_date: date, end_date: date) -> List[NormalizedEvent]:
        """
        Return events from ``start_date`` through ``end_date`` inclusive.

        Events are sorted by date, then start time. Stored items that no
        longer parse are skipped.
        """
        events = []
        current = start_date

        while current <= end_date:
            for item in self.store.get(partition_key(current.isoformat())) or []:
                event = self._to_event(item)
                if event:
                    events.append(event)
            current += timedelta(days=1)

        return sorted(events, key=lambda e: (e.date, e.start_time))

    def get_event_by_id(self, event_id: str) -> Optional[NormalizedEvent]:
        item = self.store.get(event_key(event_id))
        return self._to_event(item) if item else None

    def count_upcoming_events(self, days: int = 7, today: Optional[date] = None) -> int:
        """Count stored events over the next ``days`` partitions, today included."""
        today = today or date.today()
        total = 0
        for offset in range(days):
            day = today + timedelta(days=offset)
            total += len(self.store.get(partition_key(day.isoformat())) or [])
        return total

    def _to_event(self, item: dict) -> Optional[NormalizedEvent]:
        try:
            return NormalizedEvent.from_dict(item)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to convert stored item to NormalizedEvent: {e}")
            return None
