"""Scraper for community listings on WoodlandsOnline."""
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


class WoodlandsOnlineScraper(SourceAdapter):
    """Scraper for the WoodlandsOnline events page."""

    BASE_URL = "https://www.woodlandsonline.com"
    EVENTS_PATH = "/evps/"

    def __init__(self, fetcher: Optional[HtmlFetcher] = None):
        self.fetcher = fetcher or HtmlFetcher()

    @property
    def source(self) -> EventSource:
        # Listings are curated by hand on the site
        return EventSource.MANUAL

    def fetch_raw_events(self) -> List[RawEvent]:
        url = urljoin(self.BASE_URL, self.EVENTS_PATH)

        try:
            html_content = self.fetcher.get(url)
        except requests.RequestException as e:
            raise FetchError(self.source.value, e) from e

        events = self._parse_events(html_content)
        logger.info(f"Parsed {len(events)} events from WoodlandsOnline")
        return events

    def _parse_events(self, html_content: str) -> List[RawEvent]:
        soup = BeautifulSoup(html_content, 'html.parser')
        events = []

        for element in soup.select('div.evp-event'):
            try:
                event = self._parse_event_element(element)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse WoodlandsOnline listing: {e}")
                continue

        return events

    def _parse_event_element(self, element) -> Optional[RawEvent]:
        link = element.select_one('a.evp-title')
        if link is None:
            return None

        title = link.get_text(' ', strip=True)
        date = element_text(element, '.evp-date')
        if not title or not date:
            return None

        start_time, end_time = split_time_range(element_text(element, '.evp-time'))
        image = element.select_one('img.evp-image')
        href = link.get('href')

        return RawEvent(
            title=title,
            description=element_text(element, '.evp-desc'),
            date=date,
            start_time=start_time,
            end_time=end_time,
            venue=Venue(
                name=element_text(element, '.evp-venue'),
                address=element_text(element, '.evp-address')
            ),
            price=element_text(element, '.evp-price') or None,
            url=urljoin(self.BASE_URL, href) if href else urljoin(self.BASE_URL, self.EVENTS_PATH),
            image_url=urljoin(self.BASE_URL, image['src']) if image and image.get('src') else None
        )
