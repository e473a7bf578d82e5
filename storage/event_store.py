"""Date-partitioned persistence of normalized events and run metadata."""
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from processor.errors import StoreError
from processor.models import EventSource, NormalizedEvent, RunSummary
from storage.base import KeyValueStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24
META_KEY = 'events:meta'


def partition_key(event_date: str) -> str:
    return f"events:{event_date}"


def event_key(event_id: str) -> str:
    return f"event:{event_id}"


def last_scrape_key(source: EventSource) -> str:
    return f"scrape:last:{EventSource(source).value}"


def source_errors_key(source: EventSource) -> str:
    return f"scrape:errors:{EventSource(source).value}"


def group_by_date(events: List[NormalizedEvent]) -> Dict[str, List[NormalizedEvent]]:
    """Group events by calendar date, preserving input order within a day."""
    events_by_date = OrderedDict()
    for event in events:
        events_by_date.setdefault(event.date, []).append(event)
    return events_by_date


class EventStoreWriter:
    """
    Writes day partitions, run metadata and per-source diagnostics.

    Assumes a single ingestion run writes at a time. Overlapping runs race
    on the same partition keys and the last writer wins.
    """

    def __init__(
        self,
        store: KeyValueStore,
        partition_ttl_days: int = 30,
        error_ttl_days: int = 7,
        error_history: int = 10
    ):
        """
        Args:
            store: Key-value store to write to
            partition_ttl_days: Expiry for partitions and metadata
            error_ttl_days: Expiry for per-source error history
            error_history: Number of errors kept per source
        """
        self.store = store
        self.partition_ttl = partition_ttl_days * SECONDS_PER_DAY
        self.error_ttl = error_ttl_days * SECONDS_PER_DAY
        self.error_history = error_history

    def persist(self, events: List[NormalizedEvent]) -> int:
        """
        Overwrite the partition of every date present in ``events``.

        Each event is also written under its own id key for lookups.

        Returns:
            Number of date partitions written

        Raises:
            StoreError: If any write fails
        """
        events_by_date = group_by_date(events)

        items = {}
        for event_date, day_events in events_by_date.items():
            items[partition_key(event_date)] = [e.to_dict() for e in day_events]
        for event in events:
            items[event_key(event.id)] = event.to_dict()

        try:
            self.store.set_many(items, ttl_seconds=self.partition_ttl)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to write event partitions: {e}") from e

        logger.info(
            f"Stored {len(events)} events across {len(events_by_date)} dates"
        )
        return len(events_by_date)

    def write_metadata(self, summary: RunSummary) -> None:
        """
        Replace the run metadata record.

        Raises:
            StoreError: If the write fails
        """
        metadata = {
            'totalEvents': summary.total_events,
            'lastUpdated': summary.timestamp,
            'sources': [result.source.value for result in summary.sources],
            'sourceResults': [result.to_dict() for result in summary.sources],
            'errors': list(summary.errors),
        }

        try:
            self.store.set(META_KEY, metadata, ttl_seconds=self.partition_ttl)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to write run metadata: {e}") from e

    def get_metadata(self) -> Optional[dict]:
        return self.store.get(META_KEY)

    def record_source_success(self, source: EventSource, at: Optional[datetime] = None) -> None:
        at = at or datetime.now(timezone.utc)
        self.store.set(last_scrape_key(source), at.isoformat())

    def record_source_error(
        self,
        source: EventSource,
        message: str,
        at: Optional[datetime] = None
    ) -> None:
        """Prepend an error to the source's history, keeping the newest entries."""
        at = at or datetime.now(timezone.utc)
        entry = {'timestamp': at.isoformat(), 'message': message}

        existing = self.store.get(source_errors_key(source)) or []
        updated = [entry] + existing
        self.store.set(
            source_errors_key(source),
            updated[:self.error_history],
            ttl_seconds=self.error_ttl
        )

    def get_last_scrape_time(self, source: EventSource) -> Optional[datetime]:
        timestamp = self.store.get(last_scrape_key(source))
        return datetime.fromisoformat(timestamp) if timestamp else None

    def get_source_errors(self, source: EventSource) -> List[dict]:
        return self.store.get(source_errors_key(source)) or []
