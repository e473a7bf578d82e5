"""Unit tests for partitioned event persistence and the read API."""
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest

from processor.errors import StoreError
from processor.models import (
    EventCategory,
    EventSource,
    NormalizedEvent,
    RunState,
    RunSummary,
    SourceResult,
    Venue,
)
from storage.base import InMemoryKeyValueStore
from storage.event_catalog import EventCatalog
from storage.event_store import EventStoreWriter, META_KEY, group_by_date

DAY = 60 * 60 * 24


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now=1_900_000_000):
        self.now = now

    def __call__(self):
        return self.now


def make_event(title, date='2030-01-15', start_time='10:00', source=EventSource.TOWNSHIP):
    slug = title.lower().replace(' ', '-')
    return NormalizedEvent(
        id=f"{source.value}-{date.replace('-', '')}-{slug}",
        title=title,
        description='',
        date=date,
        start_time=start_time,
        end_time='',
        venue=Venue(name='Town Green Park', address='2099 Lake Robbins Dr'),
        category=EventCategory.COMMUNITY,
        price='Free',
        source=source,
        source_url='https://example.com'
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def writer(store):
    return EventStoreWriter(store, partition_ttl_days=30)


@pytest.fixture
def catalog(store):
    return EventCatalog(store)


class TestEventStoreWriter:
    """Test cases for EventStoreWriter."""

    def test_group_by_date(self):
        """Test grouping events by date in input order."""
        events = [
            make_event('A', date='2030-01-15'),
            make_event('B', date='2030-01-16'),
            make_event('C', date='2030-01-15'),
        ]

        grouped = group_by_date(events)

        assert list(grouped) == ['2030-01-15', '2030-01-16']
        assert [e.title for e in grouped['2030-01-15']] == ['A', 'C']

    def test_persist_writes_partitions_and_ids(self, writer, store):
        """Test that persist writes day partitions and ID keys."""
        events = [
            make_event('Garden Workshop'),
            make_event('Board Meeting', date='2030-01-16'),
            make_event('Senior Session'),
        ]

        assert writer.persist(events) == 2

        day = store.get('events:2030-01-15')
        assert [item['title'] for item in day] == ['Garden Workshop', 'Senior Session']
        assert store.get('events:2030-01-16')[0]['title'] == 'Board Meeting'
        assert store.get('event:township-20300115-garden-workshop')['title'] == 'Garden Workshop'

    def test_persist_overwrites_partition(self, writer, store):
        """Test that a later run replaces a day's partition."""
        writer.persist([make_event('Old Listing'), make_event('Garden Workshop')])
        writer.persist([make_event('Garden Workshop')])

        assert [item['title'] for item in store.get('events:2030-01-15')] == ['Garden Workshop']

    def test_partitions_expire(self, writer, store, clock):
        """Test that partitions expire after the TTL."""
        writer.persist([make_event('Garden Workshop')])

        clock.now += 29 * DAY
        assert store.get('events:2030-01-15') is not None

        clock.now += 2 * DAY
        assert store.get('events:2030-01-15') is None

    def test_persist_wraps_store_failures(self):
        """Test that store exceptions surface as StoreError."""
        store = Mock()
        store.set_many.side_effect = RuntimeError('throttled')

        with pytest.raises(StoreError, match='throttled'):
            EventStoreWriter(store).persist([make_event('Garden Workshop')])

    def test_write_metadata_replaces_previous(self, writer, store):
        """Test that run metadata overwrites the previous record."""
        summary = RunSummary(
            success=True,
            state=RunState.COMPLETED,
            total_events=3,
            sources=[SourceResult(source=EventSource.TOWNSHIP, raw_count=4,
                                  event_count=3, fetched=True)],
            errors=['Invalid event: x'],
            timestamp='2030-01-15T06:00:00+00:00'
        )
        store.set(META_KEY, {'stale': True})

        writer.write_metadata(summary)

        metadata = writer.get_metadata()
        assert 'stale' not in metadata
        assert metadata['totalEvents'] == 3
        assert metadata['lastUpdated'] == '2030-01-15T06:00:00+00:00'
        assert metadata['sources'] == ['township']
        assert metadata['errors'] == ['Invalid event: x']
        assert metadata['sourceResults'][0]['rawEvents'] == 4

    def test_source_error_history_keeps_latest(self, writer):
        """Test that only the ten newest source errors are kept."""
        for i in range(12):
            writer.record_source_error(EventSource.PAVILION, f"error {i}")

        errors = writer.get_source_errors(EventSource.PAVILION)

        assert len(errors) == 10
        assert errors[0]['message'] == 'error 11'
        assert errors[-1]['message'] == 'error 2'

    def test_last_scrape_time(self, writer):
        """Test recording and reading the last successful scrape time."""
        at = datetime(2030, 1, 15, 6, 0, tzinfo=timezone.utc)

        assert writer.get_last_scrape_time(EventSource.TOWNSHIP) is None

        writer.record_source_success(EventSource.TOWNSHIP, at=at)

        assert writer.get_last_scrape_time(EventSource.TOWNSHIP) == at


class TestEventCatalog:
    """Test cases for the read API."""

    def test_events_sorted_by_date_then_start_time(self, writer, catalog):
        """Test that range reads sort by date then start time."""
        writer.persist([
            make_event('Evening Yoga', date='2030-01-15', start_time='18:00'),
            make_event('Board Meeting', date='2030-01-16', start_time='09:00'),
            make_event('Morning Coffee', date='2030-01-15', start_time='07:30'),
            make_event('Out Of Range', date='2030-01-18', start_time='07:00'),
        ])

        events = catalog.get_events_by_date_range(date(2030, 1, 15), date(2030, 1, 17))

        assert [e.title for e in events] == ['Morning Coffee', 'Evening Yoga', 'Board Meeting']

    def test_inverted_range_is_empty(self, writer, catalog):
        """Test that an end date before the start date returns nothing."""
        writer.persist([make_event('Garden Workshop')])

        assert catalog.get_events_by_date_range(date(2030, 1, 16), date(2030, 1, 15)) == []

    def test_get_event_by_id(self, writer, catalog):
        """Test lookup of a stored event by ID."""
        event = make_event('Garden Workshop')
        writer.persist([event])

        assert catalog.get_event_by_id(event.id) == event
        assert catalog.get_event_by_id('township-20300115-unknown') is None

    def test_corrupt_items_are_skipped(self, store, catalog):
        """Test that stored items that fail to parse are skipped."""
        store.set('events:2030-01-15', [
            {'title': 'No id'},
            make_event('Garden Workshop').to_dict(),
        ])

        events = catalog.get_events_by_date_range(date(2030, 1, 15), date(2030, 1, 15))

        assert [e.title for e in events] == ['Garden Workshop']

    def test_count_upcoming_events(self, writer, catalog):
        """Test counting events in the next seven days."""
        writer.persist([
            make_event('A', date='2030-01-15'),
            make_event('B', date='2030-01-21'),
            make_event('C', date='2030-01-22'),
        ])

        assert catalog.count_upcoming_events(days=7, today=date(2030, 1, 15)) == 2
