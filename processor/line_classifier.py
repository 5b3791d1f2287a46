"""Decide whether a line under an event title is date/time or location."""
import re
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Tuple

from processor.datetime_normalizer import ALL_DAY_PATTERN, DATE_PATTERN, TIME_PATTERN


class LineKind(str, Enum):
    DATE = 'date'
    LOCATION = 'location'


class LineClassifier(Protocol):
    """Anything that can sort a line into the date or location bucket."""

    def classify(self, line: str) -> LineKind:
        ...


class KeywordLineClassifier:
    """
    Classify lines with a fixed location-keyword dictionary.

    A location keyword wins over a date/time-looking token, since room and
    building names ("Hamilton Library 301", "Room 12:30") can look like
    dates. Lines matching neither are treated as location text.
    """

    LOCATION_KEYWORDS = (
        'Campus', 'Hall', 'Center', 'Centre', 'Library', 'Room', 'Rm', 'Bldg',
        'Building', 'Auditorium', 'Theatre', 'Theater', 'Lounge', 'Gallery',
        'Lab', 'Lawn', 'Courtyard', 'Stadium', 'Arena', 'Field', 'Quad',
        'Online', 'Zoom', 'Virtual', 'Webinar',
    )

    def __init__(self, location_keywords: Optional[Iterable[str]] = None):
        keywords = list(location_keywords or self.LOCATION_KEYWORDS)
        self._location_pattern = re.compile(
            r'\b(?:' + '|'.join(re.escape(k) for k in keywords) + r')\b',
            re.IGNORECASE
        )

    def classify(self, line: str) -> LineKind:
        if self._location_pattern.search(line):
            return LineKind.LOCATION
        if (TIME_PATTERN.search(line) or DATE_PATTERN.search(line)
                or ALL_DAY_PATTERN.search(line)):
            return LineKind.DATE
        return LineKind.LOCATION


def split_lines(
    lines: Iterable[str], classifier: LineClassifier
) -> Tuple[List[str], List[str]]:
    """Sort lines into (date_lines, location_lines), keeping their order."""
    date_lines: List[str] = []
    location_lines: List[str] = []
    for line in lines:
        if classifier.classify(line) == LineKind.DATE:
            date_lines.append(line)
        else:
            location_lines.append(line)
    return date_lines, location_lines
