"""Registry of available source adapters."""
from typing import Callable, Dict, Iterable, List, Optional, Type

from processor.errors import ConfigurationError
from scraper.base import SourceAdapter
from scraper.http import HtmlFetcher
from scraper.pavilion import PavilionScraper
from scraper.township import TownshipScraper
from scraper.woodlands_online import WoodlandsOnlineScraper

# Registration order is the order events reach the deduplicator.
ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    "township": TownshipScraper,
    "woodlands_online": WoodlandsOnlineScraper,
    "pavilion": PavilionScraper,
}

DEFAULT_SOURCES = list(ADAPTERS)


def build_adapters(
    names: Optional[Iterable[str]] = None,
    fetcher_factory: Optional[Callable[[], HtmlFetcher]] = None
) -> List[SourceAdapter]:
    """
    Instantiate adapters by name, in the order given.

    Each adapter gets its own fetcher so adapters share no state.

    Raises:
        ConfigurationError: If a name is not registered
    """
    names = list(names) if names is not None else DEFAULT_SOURCES
    fetcher_factory = fetcher_factory or HtmlFetcher

    adapters = []
    for name in names:
        try:
            cls = ADAPTERS[name]
        except KeyError:
            available = ", ".join(sorted(ADAPTERS))
            raise ConfigurationError(
                f"Unknown event source '{name}'. Available: {available}"
            ) from None
        adapters.append(cls(fetcher=fetcher_factory()))

    return adapters
