"""Ingestion pipeline: fetch, normalize, deduplicate and persist events."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from processor.deduplicator import remove_duplicates
from processor.errors import ConfigurationError, FetchError, StoreError
from processor.event_processor import EventNormalizer
from processor.models import (
    NormalizedEvent,
    RawEvent,
    RunState,
    RunSummary,
    SourceResult,
)
from scraper.base import SourceAdapter
from storage.event_catalog import EventCatalog
from storage.event_store import EventStoreWriter

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestionPipeline:
    """
    Runs every source adapter and publishes the merged catalog.

    A run moves IDLE -> RUNNING -> COMPLETED or PARTIALLY_FAILED and always
    returns a RunSummary, even when every adapter fails.
    """

    def __init__(
        self,
        adapters: List[SourceAdapter],
        normalizer: EventNormalizer,
        writer: EventStoreWriter,
        adapter_deadline: float = 60,
        min_refresh_interval: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize the pipeline.

        Args:
            adapters: Source adapters, in the order their events are merged
            normalizer: Validator/normalizer for raw events
            writer: Store writer for partitions and metadata
            adapter_deadline: Seconds each adapter may run before it is
                treated as failed
            min_refresh_interval: Non-forced runs are skipped when the last
                run finished less than this long ago
            clock: Returns the current UTC time
        """
        if not adapters:
            raise ConfigurationError("At least one source adapter is required")

        self.adapters = adapters
        self.normalizer = normalizer
        self.writer = writer
        self.adapter_deadline = adapter_deadline
        self.min_refresh_interval = min_refresh_interval
        self.clock = clock
        self.state = RunState.IDLE

    def run(self, force: bool = False) -> RunSummary:
        """
        Execute one ingestion run.

        Args:
            force: Run even if the last run is within the refresh interval

        Returns:
            RunSummary describing the run
        """
        started = self.clock()
        start_time = time.monotonic()
        timestamp = started.isoformat()

        if not force and self._recently_refreshed(started):
            logger.info("Skipping ingestion run: catalog refreshed recently")
            return RunSummary(
                success=True,
                state=self.state,
                total_events=0,
                sources=[],
                errors=[],
                timestamp=timestamp,
                skipped=True
            )

        self.state = RunState.RUNNING
        logger.info(
            f"Starting ingestion of {len(self.adapters)} sources",
            extra={'force': force}
        )

        errors: List[str] = []
        results: List[SourceResult] = []
        store_failed = False
        unique_events: List[NormalizedEvent] = []

        fetched = self._fetch_all(timestamp)

        try:
            merged: List[NormalizedEvent] = []
            for result, raw_events, fetch_error in fetched:
                results.append(result)
                if fetch_error:
                    errors.append(fetch_error)
                    continue

                events, event_errors = self.normalizer.process_events(raw_events, result.source)
                result.event_count = len(events)
                result.errors.extend(event_errors)
                errors.extend(event_errors)
                merged.extend(events)

            unique_events = remove_duplicates(merged)
            self.writer.persist(unique_events)
        except StoreError as e:
            store_failed = True
            error_msg = f"Failed to persist events: {e}"
            logger.error(error_msg)
            errors.append(error_msg)
        except Exception as e:
            store_failed = True
            error_msg = f"Ingestion failed: {e}"
            logger.error(error_msg, exc_info=True)
            errors.append(error_msg)

        any_fetched = any(result.fetched for result in results)
        all_fetched = all(result.fetched for result in results)

        self.state = (
            RunState.COMPLETED if all_fetched and not store_failed
            else RunState.PARTIALLY_FAILED
        )

        summary = RunSummary(
            success=any_fetched and not store_failed,
            state=self.state,
            total_events=len(unique_events),
            sources=results,
            errors=errors,
            timestamp=timestamp,
            duration_seconds=time.monotonic() - start_time
        )

        if not store_failed:
            try:
                self.writer.write_metadata(summary)
            except StoreError as e:
                error_msg = f"Failed to persist events: {e}"
                logger.error(error_msg)
                summary.errors.append(error_msg)
                summary.success = False
                self.state = summary.state = RunState.PARTIALLY_FAILED

        self._record_diagnostics(fetched, started)

        logger.info(
            f"Ingestion finished: {summary.total_events} unique events, "
            f"{len(summary.errors)} errors",
            extra={
                'state': summary.state.value,
                'duration_seconds': round(summary.duration_seconds, 2)
            }
        )
        return summary

    def _fetch_all(self, timestamp: str) -> List[Tuple[SourceResult, List[RawEvent], Optional[str]]]:
        """
        Run all adapters concurrently and join them in registration order.

        Returns:
            One (result, raw events, error message) tuple per adapter
        """
        executor = ThreadPoolExecutor(
            max_workers=len(self.adapters),
            thread_name_prefix='source-adapter'
        )
        outcomes = []

        try:
            futures = [
                (adapter, executor.submit(adapter.fetch_raw_events))
                for adapter in self.adapters
            ]
            deadline = time.monotonic() + self.adapter_deadline

            for adapter, future in futures:
                source = adapter.source
                result = SourceResult(source=source, scraped_at=timestamp)
                cause = None

                try:
                    raw_events = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FuturesTimeoutError:
                    future.cancel()
                    cause = f"timed out after {self.adapter_deadline} seconds"
                except FetchError as e:
                    cause = e.cause
                except Exception as e:
                    cause = e

                if cause is not None:
                    error_msg = f"Failed to scrape {source.value}: {cause}"
                    logger.error(error_msg)
                    result.errors.append(error_msg)
                    outcomes.append((result, [], error_msg))
                    continue

                result.fetched = True
                result.raw_count = len(raw_events)
                logger.info(f"Fetched {len(raw_events)} raw events from {source.value}")
                outcomes.append((result, raw_events, None))
        finally:
            # Do not block on adapters that overran the deadline
            executor.shutdown(wait=False, cancel_futures=True)

        return outcomes

    def _recently_refreshed(self, now: datetime) -> bool:
        if self.min_refresh_interval <= timedelta(0):
            return False

        try:
            metadata = self.writer.get_metadata()
        except StoreError as e:
            logger.warning(f"Could not read run metadata: {e}")
            return False

        if not metadata or not metadata.get('lastUpdated'):
            return False

        last_updated = datetime.fromisoformat(metadata['lastUpdated'])
        return now - last_updated < self.min_refresh_interval

    def _record_diagnostics(self, fetched, at: datetime) -> None:
        for result, _, fetch_error in fetched:
            try:
                if fetch_error:
                    self.writer.record_source_error(result.source, fetch_error, at=at)
                else:
                    self.writer.record_source_success(result.source, at=at)
            except StoreError as e:
                logger.warning(
                    f"Could not record diagnostics for {result.source.value}: {e}"
                )

    def get_scraping_stats(self, days: int = 7) -> dict:
        """Per-source last run time and error counts, plus upcoming event count."""
        catalog = EventCatalog(self.writer.store)
        sources = []

        for adapter in self.adapters:
            last_scrape = self.writer.get_last_scrape_time(adapter.source)
            sources.append({
                'source': adapter.source.value,
                'lastScrape': last_scrape.isoformat() if last_scrape else None,
                'errorCount': len(self.writer.get_source_errors(adapter.source)),
            })

        return {
            'sources': sources,
            'totalEvents': catalog.count_upcoming_events(
                days=days,
                today=self.normalizer.today()
            ),
        }
