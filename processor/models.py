"""Data models for event ingestion."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EventCategory(str, Enum):
    """Fixed set of display categories."""
    MUSIC = 'music'
    SPORTS = 'sports'
    FAMILY = 'family'
    FOOD = 'food'
    ARTS = 'arts'
    COMMUNITY = 'community'
    BUSINESS = 'business'
    OTHER = 'other'


class EventSource(str, Enum):
    """Origin of an event listing."""
    EVENTBRITE = 'eventbrite'
    TOWNSHIP = 'township'
    MARKETSTREET = 'marketstreet'
    PAVILION = 'pavilion'
    MANUAL = 'manual'


class RunState(str, Enum):
    """Lifecycle of one ingestion run."""
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    PARTIALLY_FAILED = 'partially_failed'


@dataclass
class Venue:
    """Where an event takes place."""
    name: str
    address: str = ''


@dataclass
class RawEvent:
    """Unvalidated event as reported by a source adapter."""
    title: str
    description: str
    date: str
    venue: Venue
    url: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    price: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class NormalizedEvent:
    """Validated and normalized event."""
    id: str
    title: str
    description: str
    date: str
    start_time: str
    end_time: str
    venue: Venue
    category: EventCategory
    price: str
    source: EventSource
    source_url: str
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase shape consumed by the display layer."""
        item = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'date': self.date,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'venue': {
                'name': self.venue.name,
                'address': self.venue.address,
            },
            'category': self.category.value,
            'price': self.price,
            'source': self.source.value,
            'sourceUrl': self.source_url,
        }

        if self.image_url:
            item['imageUrl'] = self.image_url

        return item

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'NormalizedEvent':
        """
        Rebuild an event from its stored dict.

        Raises:
            KeyError, ValueError: If the dict is missing fields or holds
                an unknown category/source
        """
        venue = item.get('venue') or {}
        return cls(
            id=item['id'],
            title=item['title'],
            description=item.get('description', ''),
            date=item['date'],
            start_time=item.get('startTime', ''),
            end_time=item.get('endTime', ''),
            venue=Venue(
                name=venue.get('name', ''),
                address=venue.get('address', '')
            ),
            category=EventCategory(item.get('category', 'other')),
            price=item.get('price', 'Free'),
            source=EventSource(item['source']),
            source_url=item.get('sourceUrl', ''),
            image_url=item.get('imageUrl')
        )


@dataclass
class SourceResult:
    """Outcome of one source adapter within a run."""
    source: EventSource
    raw_count: int = 0
    event_count: int = 0
    errors: List[str] = field(default_factory=list)
    scraped_at: str = ''
    fetched: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source.value,
            'rawEvents': self.raw_count,
            'events': self.event_count,
            'errors': len(self.errors),
            'scrapedAt': self.scraped_at,
            'fetched': self.fetched,
        }


@dataclass
class RunSummary:
    """Result of one ingestion run."""
    success: bool
    state: RunState
    total_events: int
    sources: List[SourceResult]
    errors: List[str]
    timestamp: str
    duration_seconds: float = 0.0
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'state': self.state.value,
            'timestamp': self.timestamp,
            'totalEvents': self.total_events,
            'sources': [result.to_dict() for result in self.sources],
            'errors': list(self.errors),
            'durationSeconds': round(self.duration_seconds, 2),
            'skipped': self.skipped,
        }
