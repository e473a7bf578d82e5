"""Cross-source duplicate removal for normalized events."""
import logging
from typing import List

from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

TITLE_MATCH_THRESHOLD = 0.85
TITLE_PARTIAL_THRESHOLD = 0.60
VENUE_MATCH_THRESHOLD = 0.80


def levenshtein_distance(str1: str, str2: str) -> int:
    """Edit distance with unit insertion, deletion and substitution costs."""
    matrix = [[0] * (len(str1) + 1) for _ in range(len(str2) + 1)]

    for i in range(len(str1) + 1):
        matrix[0][i] = i
    for j in range(len(str2) + 1):
        matrix[j][0] = j

    for j in range(1, len(str2) + 1):
        for i in range(1, len(str1) + 1):
            indicator = 0 if str1[i - 1] == str2[j - 1] else 1
            matrix[j][i] = min(
                matrix[j][i - 1] + 1,
                matrix[j - 1][i] + 1,
                matrix[j - 1][i - 1] + indicator
            )

    return matrix[len(str2)][len(str1)]


def calculate_string_similarity(str1: str, str2: str) -> float:
    """
    Similarity in [0, 1] as 1 - distance / length of the longer string.

    Two empty strings are identical (1.0). Comparison is case-sensitive;
    callers lowercase first.
    """
    longer, shorter = (str1, str2) if len(str1) > len(str2) else (str2, str1)

    if len(longer) == 0:
        return 1.0

    distance = levenshtein_distance(longer, shorter)
    return (len(longer) - distance) / len(longer)


def are_events_similar(event1: NormalizedEvent, event2: NormalizedEvent) -> bool:
    """
    Decide whether two events describe the same happening.

    Events on different dates never match. Same-day events match when the
    titles are more than 85% similar, or more than 60% similar with venue
    names more than 80% similar.
    """
    if event1.date != event2.date:
        return False

    title_similarity = calculate_string_similarity(
        event1.title.lower(),
        event2.title.lower()
    )
    if title_similarity > TITLE_MATCH_THRESHOLD:
        return True

    venue_similarity = calculate_string_similarity(
        event1.venue.name.lower(),
        event2.venue.name.lower()
    )
    return (
        title_similarity > TITLE_PARTIAL_THRESHOLD and
        venue_similarity > VENUE_MATCH_THRESHOLD
    )


def remove_duplicates(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
    """
    Collapse near-duplicates, keeping the first occurrence.

    Every event is compared against the events already kept, so the
    result depends on input order.
    """
    unique_events = []

    for event in events:
        if any(are_events_similar(event, existing) for existing in unique_events):
            logger.info(
                f"Removing duplicate: '{event.title}' on {event.date} "
                f"({event.source.value})"
            )
            continue
        unique_events.append(event)

    logger.info(
        f"Deduplicated {len(events)} events down to {len(unique_events)}"
    )
    return unique_events
