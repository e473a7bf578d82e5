"""AWS Lambda handler for Woodlands events ingestion."""
import json
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pipeline.config import PipelineConfig
from pipeline.orchestrator import IngestionPipeline
from processor.event_processor import EventNormalizer
from scraper.base import SourceAdapter
from scraper.http import HtmlFetcher
from scraper.registry import build_adapters
from storage.base import InMemoryKeyValueStore, KeyValueStore
from storage.dynamodb_store import DynamoDBKeyValueStore
from storage.event_store import EventStoreWriter

# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including ``extra`` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


logger = logging.getLogger(__name__)


def build_store(config: PipelineConfig) -> KeyValueStore:
    if config.store_backend == 'memory':
        return InMemoryKeyValueStore()
    return DynamoDBKeyValueStore(config.table_name, region_name=config.aws_region)


def build_pipeline(
    config: PipelineConfig,
    adapters: Optional[List[SourceAdapter]] = None,
    store: Optional[KeyValueStore] = None
) -> IngestionPipeline:
    """
    Wire adapters, normalizer, store writer and pipeline from configuration.

    Raises:
        ConfigurationError: If the configuration cannot produce a pipeline
    """
    if adapters is None:
        adapters = build_adapters(
            config.sources,
            fetcher_factory=lambda: HtmlFetcher(
                timeout=config.fetch_timeout_seconds,
                max_retries=config.max_retries,
                base_delay=config.retry_base_delay_seconds
            )
        )

    writer = EventStoreWriter(
        store if store is not None else build_store(config),
        partition_ttl_days=config.partition_ttl_days
    )

    return IngestionPipeline(
        adapters=adapters,
        normalizer=EventNormalizer(timezone=config.zone()),
        writer=writer,
        adapter_deadline=config.adapter_deadline_seconds,
        min_refresh_interval=timedelta(minutes=config.min_refresh_minutes)
    )


def _failure(message: str, error: Exception) -> Dict[str, Any]:
    return {
        'success': False,
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }


def run_ingestion(
    force: bool = False,
    config: Optional[PipelineConfig] = None,
    adapters: Optional[List[SourceAdapter]] = None,
    store: Optional[KeyValueStore] = None
) -> Dict[str, Any]:
    """
    Run one ingestion pass and return its structured result.

    Never raises. A run summary carries ``state``; a failure to set the
    pipeline up returns ``success`` False with ``error`` and
    ``error_type`` instead.

    Args:
        force: Ignore the minimum refresh interval
        config: Configuration, read from the environment if omitted
        adapters: Adapters to run instead of the configured ones
        store: Key-value store to use instead of the configured one
    """
    try:
        config = config or PipelineConfig.from_env()
        pipeline = build_pipeline(config, adapters=adapters, store=store)
    except Exception as e:
        logger.error(
            f"Ingestion setup failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _failure('Ingestion setup failed', e)

    try:
        return pipeline.run(force=force).to_dict()
    except Exception as e:
        logger.error(
            f"Ingestion run failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _failure('Ingestion run failed', e)


def get_stats(config: Optional[PipelineConfig] = None) -> Dict[str, Any]:
    """Scraping stats for operators; failures are reported, not raised."""
    try:
        config = config or PipelineConfig.from_env()
        stats = build_pipeline(config).get_scraping_stats()
    except Exception as e:
        logger.error(f"Failed to collect scraping stats: {e}", exc_info=True)
        return _failure('Failed to collect scraping stats', e)

    return {
        'success': True,
        'stats': stats,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }


def parse_force_flag(value: Any) -> bool:
    """Read the ``force`` payload field; only true, "true" or "1" force a run."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1')
    return False


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function.

    Args:
        event: EventBridge schedule payload, or a manual invocation payload
            with optional ``force`` (true, "true" or "1") and ``action`` ("run" or "stats")
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    event = event or {}

    if event.get('action') == 'stats':
        result = get_stats()
    else:
        force = parse_force_flag(event.get('force'))
        logger.info("Lambda execution started", extra={'force': force})
        result = run_ingestion(force=force)

    # A run summary is a 200 even when sources failed; only setup failures are 500s
    status_code = 200 if 'state' in result or 'stats' in result else 500

    return {
        'statusCode': status_code,
        'body': json.dumps(result)
    }
