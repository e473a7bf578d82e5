"""Pipeline configuration read from environment variables."""
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from processor.errors import ConfigurationError
from scraper.registry import ADAPTERS, DEFAULT_SOURCES

STORE_BACKENDS = ('dynamodb', 'memory')


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float, minimum: float = 0.0) -> float:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for one ingestion deployment."""
    table_name: str = 'woodlands-events'
    store_backend: str = 'dynamodb'
    aws_region: Optional[str] = None
    log_level: str = 'INFO'
    sources: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    fetch_timeout_seconds: float = 10
    adapter_deadline_seconds: float = 60
    max_retries: int = 2
    retry_base_delay_seconds: float = 0.5
    partition_ttl_days: int = 30
    min_refresh_minutes: int = 0
    timezone: str = 'America/Chicago'

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'PipelineConfig':
        """
        Build configuration from environment variables.

        Raises:
            ConfigurationError: If any value is invalid
        """
        env = os.environ if env is None else env

        sources_raw = env.get('EVENT_SOURCES', '')
        sources = [s.strip() for s in sources_raw.split(',') if s.strip()]

        config = cls(
            table_name=env.get('TABLE_NAME', 'woodlands-events'),
            store_backend=env.get('STORE_BACKEND', 'dynamodb').lower(),
            aws_region=env.get('AWS_REGION') or None,
            log_level=env.get('LOG_LEVEL', 'INFO'),
            sources=sources or list(DEFAULT_SOURCES),
            fetch_timeout_seconds=_float(env, 'FETCH_TIMEOUT_SECONDS', 10, minimum=0.001),
            adapter_deadline_seconds=_float(env, 'ADAPTER_DEADLINE_SECONDS', 60, minimum=0.001),
            max_retries=_int(env, 'MAX_RETRIES', 2),
            retry_base_delay_seconds=_float(env, 'RETRY_BASE_DELAY_SECONDS', 0.5),
            partition_ttl_days=_int(env, 'PARTITION_TTL_DAYS', 30, minimum=1),
            min_refresh_minutes=_int(env, 'MIN_REFRESH_MINUTES', 0),
            timezone=env.get('EVENTS_TIMEZONE', 'America/Chicago')
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On unknown backends, sources or time zones
        """
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unknown STORE_BACKEND '{self.store_backend}'. "
                f"Available: {', '.join(STORE_BACKENDS)}"
            )

        if not self.sources:
            raise ConfigurationError("No event sources configured")

        unknown = [s for s in self.sources if s not in ADAPTERS]
        if unknown:
            raise ConfigurationError(
                f"Unknown event sources: {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(ADAPTERS))}"
            )

        self.zone()

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(f"Unknown EVENTS_TIMEZONE '{self.timezone}'") from None
