"""Calendar scraper for The Woodlands Township."""
import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from processor.errors import FetchError
from processor.models import EventSource, RawEvent, Venue
from scraper.base import SourceAdapter, element_text, split_time_range
from scraper.http import HtmlFetcher

logger = logging.getLogger(__name__)


class TownshipScraper(SourceAdapter):
    """Scraper for the Township's public meetings and programs calendar."""

    BASE_URL = "https://www.thewoodlandstownship-tx.gov"
    CALENDAR_PATH = "/calendar.aspx"

    def __init__(self, fetcher: Optional[HtmlFetcher] = None):
        """
        Initialize the Township scraper.

        Args:
            fetcher: HTML fetcher; a default one is created if omitted
        """
        self.fetcher = fetcher or HtmlFetcher()

    @property
    def source(self) -> EventSource:
        return EventSource.TOWNSHIP

    def fetch_raw_events(self) -> List[RawEvent]:
        """
        Fetch events from the Township calendar.

        Returns:
            List of RawEvent objects

        Raises:
            FetchError: If the calendar cannot be retrieved
        """
        url = urljoin(self.BASE_URL, self.CALENDAR_PATH)

        try:
            html_content = self.fetcher.get(url)
        except requests.RequestException as e:
            raise FetchError(self.source.value, e) from e

        events = self._parse_events(html_content)
        logger.info(f"Parsed {len(events)} events from the Township calendar")
        return events

    def _parse_events(self, html_content: str) -> List[RawEvent]:
        soup = BeautifulSoup(html_content, 'html.parser')
        events = []

        for element in soup.select('div.calendar-event'):
            try:
                event = self._parse_event_element(element)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse Township event element: {e}")
                continue

        return events

    def _parse_event_element(self, element) -> Optional[RawEvent]:
        """
        Parse a single calendar card.

        Returns:
            RawEvent or None if the card has no title or date
        """
        link = element.select_one('.event-title a')
        title = element_text(element, '.event-title')
        date = element_text(element, '.event-date')

        if not title or not date:
            return None

        start_time, end_time = split_time_range(element_text(element, '.event-time'))
        href = link.get('href') if link else None

        return RawEvent(
            title=title,
            description=element_text(element, '.event-description'),
            date=date,
            start_time=start_time,
            end_time=end_time,
            venue=Venue(
                name=element_text(element, '.event-location'),
                address=element_text(element, '.event-address')
            ),
            # Township programs are free unless the card states a fee
            price=element_text(element, '.event-fee') or 'Free',
            url=urljoin(self.BASE_URL, href) if href else urljoin(self.BASE_URL, self.CALENDAR_PATH)
        )
