"""Interface implemented by every event source adapter."""
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from processor.models import EventSource, RawEvent

TIME_RANGE_SEPARATOR = re.compile(r'\s*[-–]\s*')


class SourceAdapter(ABC):
    """Produces raw candidate events for one fixed source."""

    @property
    @abstractmethod
    def source(self) -> EventSource:
        """Identifier of the source this adapter reads."""

    @abstractmethod
    def fetch_raw_events(self) -> List[RawEvent]:
        """
        Fetch the source's current listings.

        Raises:
            FetchError: On network, timeout or page-level parse failure
        """


def split_time_range(time_text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split "10:00 AM - 2:00 PM" into its start and end parts.

    Returns (start, None) when there is no end time and (None, None) for
    empty input.
    """
    if not time_text or not time_text.strip():
        return None, None

    parts = TIME_RANGE_SEPARATOR.split(time_text.strip(), maxsplit=1)
    start_time = parts[0].strip() or None
    end_time = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
    return start_time, end_time


def element_text(element, selector: str) -> str:
    """Text of the first match for ``selector`` under ``element``, or ''."""
    found = element.select_one(selector)
    return found.get_text(' ', strip=True) if found else ''
