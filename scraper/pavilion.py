"""Concert listings for The Cynthia Woods Mitchell Pavilion."""
import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from processor.errors import FetchError
from processor.models import EventSource, RawEvent, Venue
from scraper.base import SourceAdapter, element_text
from scraper.http import HtmlFetcher

logger = logging.getLogger(__name__)


class PavilionScraper(SourceAdapter):
    """Scraper for the Pavilion's upcoming shows page."""

    BASE_URL = "https://www.woodlandscenter.org"
    EVENTS_PATH = "/events"
    VENUE = Venue(
        name="The Cynthia Woods Mitchell Pavilion",
        address="2005 Lake Robbins Dr, The Woodlands, TX 77380"
    )
    # Shows run until the venue closes
    DEFAULT_END_TIME = "12:00 AM"

    def __init__(self, fetcher: Optional[HtmlFetcher] = None):
        self.fetcher = fetcher or HtmlFetcher()

    @property
    def source(self) -> EventSource:
        return EventSource.PAVILION

    def fetch_raw_events(self) -> List[RawEvent]:
        url = urljoin(self.BASE_URL, self.EVENTS_PATH)

        try:
            html_content = self.fetcher.get(url)
        except requests.RequestException as e:
            raise FetchError(self.source.value, e) from e

        events = self._parse_events(html_content)
        logger.info(f"Parsed {len(events)} shows from the Pavilion")
        return events

    def _parse_events(self, html_content: str) -> List[RawEvent]:
        soup = BeautifulSoup(html_content, 'html.parser')
        events = []

        for element in soup.select('article.event-card'):
            try:
                event = self._parse_event_element(element)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse Pavilion event card: {e}")
                continue

        return events

    def _parse_event_element(self, element) -> Optional[RawEvent]:
        link = element.select_one('.event-card__title a')
        date_elem = element.select_one('time.event-card__date')
        if link is None or date_elem is None:
            return None

        # Prefer the machine-readable date over the display text
        date = date_elem.get('datetime') or date_elem.get_text(strip=True)
        image = element.select_one('img.event-card__image')

        return RawEvent(
            title=link.get_text(' ', strip=True),
            description=element_text(element, '.event-card__summary'),
            date=date,
            start_time=element_text(element, '.event-card__time') or None,
            end_time=self.DEFAULT_END_TIME,
            venue=Venue(name=self.VENUE.name, address=self.VENUE.address),
            price=element_text(element, '.event-card__price') or None,
            url=urljoin(self.BASE_URL, link.get('href', self.EVENTS_PATH)),
            image_url=urljoin(self.BASE_URL, image['src']) if image and image.get('src') else None
        )
