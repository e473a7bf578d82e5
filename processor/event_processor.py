"""Event normalizer for validating and cleaning raw event data."""
import logging
import re
from datetime import date, datetime, tzinfo
from typing import Callable, List, Optional, Tuple

from processor.errors import ParseError, ValidationError
from processor.models import (
    EventCategory,
    EventSource,
    NormalizedEvent,
    RawEvent,
    Venue,
)

logger = logging.getLogger(__name__)

DATE_FORMATS = [
    '%Y-%m-%d',          # ISO 8601
    '%m/%d/%Y',          # US format
    '%m-%d-%Y',          # US format with dashes
    '%B %d, %Y',         # Full month name
    '%b %d, %Y',         # Abbreviated month name
    '%A, %B %d, %Y',     # Weekday and full month name
    '%a, %b %d, %Y',     # Abbreviated weekday and month
    '%Y/%m/%d',          # Alternative ISO format
]

TIME_PATTERN = re.compile(r'(\d{1,2}):?(\d{0,2})\s*(AM|PM)?', re.IGNORECASE)

# First matching group wins.
CATEGORY_KEYWORDS = [
    (EventCategory.MUSIC, ('music', 'concert', 'band')),
    (EventCategory.FOOD, ('food', 'restaurant', 'dining')),
    (EventCategory.FAMILY, ('family', 'kids', 'children')),
    (EventCategory.BUSINESS, ('business', 'networking', 'professional')),
    (EventCategory.ARTS, ('art', 'gallery', 'exhibition')),
    (EventCategory.SPORTS, ('sport', 'fitness', 'game')),
]

FREE_PRICE = 'Free'
ZERO_PRICES = {'0', '$0'}


def parse_event_date(date_str: Optional[str]) -> date:
    """
    Parse a source date string to a calendar date.

    Args:
        date_str: Date or datetime string in one of the supported formats

    Returns:
        Parsed calendar date

    Raises:
        ParseError: If the string is empty or matches no known format
    """
    if not date_str or not date_str.strip():
        raise ParseError("empty date")

    value = date_str.strip()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    # ISO datetimes such as "2025-07-18T19:00:00Z"
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    raise ParseError(f"unrecognized date: {date_str!r}")


def parse_time(time_str: Optional[str]) -> str:
    """
    Convert a loose time string to 24-hour HH:MM.

    Accepts "2:00 PM", "14:00", "2 PM" and similar. Empty input gives an
    empty string, input with no digits is returned trimmed.
    """
    if not time_str:
        return ''

    match = TIME_PATTERN.search(time_str)
    if not match:
        return time_str.strip()

    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3).upper() if match.group(3) else None

    if meridiem == 'PM' and hours != 12:
        hours += 12
    if meridiem == 'AM' and hours == 12:
        hours = 0

    return f"{hours:02d}:{minutes:02d}"


def normalize_price(price: Optional[str]) -> str:
    """Map absent, zero and "free" prices to the Free sentinel."""
    if not price or not price.strip():
        return FREE_PRICE

    clean_price = price.strip().lower()
    if 'free' in clean_price or clean_price in ZERO_PRICES:
        return FREE_PRICE

    return price.strip()


def categorize_event(title: str, description: str) -> EventCategory:
    """Pick a category by keyword scan over title and description."""
    text = f"{title} {description}".lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category

    return EventCategory.COMMUNITY


def collapse_whitespace(value: Optional[str]) -> str:
    return re.sub(r'\s+', ' ', (value or '').strip())


def clean_title(title: str) -> str:
    return re.sub(r"[^A-Za-z0-9 .\-'&]", '', collapse_whitespace(title))


def clean_description(description: Optional[str]) -> str:
    return collapse_whitespace(description)[:EventNormalizer.MAX_DESCRIPTION_LENGTH]


def generate_event_id(source: EventSource, raw_date: str, title: str) -> str:
    """
    Build a stable identifier from source, raw date digits and title slug.

    Example: ("township", "2025-07-18", "Farmers Market!") ->
    "township-20250718-farmers-market"
    """
    title_slug = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')
    date_slug = re.sub(r'[^0-9]', '', raw_date or '')
    return f"{EventSource(source).value}-{date_slug}-{title_slug}"


class EventNormalizer:
    """Validates raw candidates and converts them to NormalizedEvent."""

    MIN_TITLE_LENGTH = 3
    MAX_DESCRIPTION_LENGTH = 500

    def __init__(
        self,
        today: Optional[Callable[[], date]] = None,
        timezone: Optional[tzinfo] = None
    ):
        """
        Initialize the normalizer.

        Args:
            today: Callable returning the reference day; events before it
                are rejected. Defaults to the current date in ``timezone``.
            timezone: Zone used for the default reference day
        """
        if today is None:
            today = lambda: datetime.now(timezone).date()
        self._today = today

    def today(self) -> date:
        return self._today()

    def check(self, raw: RawEvent) -> None:
        """
        Validate a raw event.

        Raises:
            ValidationError: With the reason the event was rejected
        """
        if not raw.title or len(raw.title.strip()) < self.MIN_TITLE_LENGTH:
            raise ValidationError("title missing or too short")

        if not raw.date or not raw.date.strip():
            raise ValidationError("missing date")

        try:
            event_date = parse_event_date(raw.date)
        except ParseError as e:
            raise ValidationError(str(e)) from e

        if raw.venue is None or not raw.venue.name or not raw.venue.name.strip():
            raise ValidationError("missing venue name")

        if event_date < self.today():
            raise ValidationError(f"date {event_date.isoformat()} is in the past")

    def validate(self, raw: RawEvent) -> bool:
        """Return True if the raw event passes every validation rule."""
        try:
            self.check(raw)
        except ValidationError:
            return False
        return True

    def normalize(self, raw: RawEvent, source: EventSource) -> NormalizedEvent:
        """
        Convert a raw event into its canonical form.

        Args:
            raw: Raw event from an adapter
            source: Adapter the event came from

        Returns:
            NormalizedEvent built only from ``raw``, ``source`` and the
            reference day
        """
        try:
            event_date = parse_event_date(raw.date)
        except ParseError as e:
            logger.warning(
                f"Defaulting date to today for event '{raw.title}': {e}"
            )
            event_date = self.today()

        venue = raw.venue or Venue(name='')

        return NormalizedEvent(
            id=generate_event_id(source, raw.date, raw.title),
            title=clean_title(raw.title),
            description=clean_description(raw.description),
            date=event_date.isoformat(),
            start_time=parse_time(raw.start_time),
            end_time=parse_time(raw.end_time),
            venue=Venue(
                name=collapse_whitespace(venue.name),
                address=collapse_whitespace(venue.address)
            ),
            category=categorize_event(raw.title, raw.description or ''),
            price=normalize_price(raw.price),
            source=EventSource(source),
            source_url=raw.url,
            image_url=raw.image_url
        )

    def process_events(
        self,
        raw_events: List[RawEvent],
        source: EventSource
    ) -> Tuple[List[NormalizedEvent], List[str]]:
        """
        Validate and normalize every raw event from one source.

        Args:
            raw_events: Raw events from an adapter
            source: Adapter the events came from

        Returns:
            Tuple of (normalized events, error messages)
        """
        events = []
        errors = []

        for raw in raw_events:
            try:
                self.check(raw)
            except ValidationError as e:
                logger.warning(f"Rejected event '{raw.title}' from {source.value}: {e}")
                errors.append(f"Invalid event: {raw.title}")
                continue

            try:
                events.append(self.normalize(raw, source))
            except Exception as e:
                error_msg = f'Failed to process event "{raw.title}": {e}'
                logger.error(error_msg)
                errors.append(error_msg)

        logger.info(
            f"Normalized {len(events)} valid events out of "
            f"{len(raw_events)} raw events from {source.value}"
        )
        return events, errors
