"""Turn free-text calendar date/time strings into UTC timestamps.

The calendar writes dates the way people do: "March 5, 2025 9:00am -
11:00am", "All day March 5", "9:00am" with the date only present in the
page URL, or just "March 5". ``DateTimeNormalizer`` runs an ordered list of
named strategies over the text and the first strategy that applies decides
the result:

1. ``all_day``: "all day" text (or the caller's hint) plus a month-day date.
2. ``timed_range``: optional date, start time, optional end time.
3. ``date_only``: a bare month-day date, treated as an all-day event.

When nothing applies the result is unresolved (``start`` is None).

Timestamps are composed field by field into aware UTC datetimes; the text
is never handed to a general-purpose date parser.

A date without a year gets the current year. Near a year boundary this
misdates events (a December event scraped in January lands a year late);
the result carries ``DateAmbiguity.DEFAULT_YEAR`` so callers can tell.
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Tuple

from processor.models import DateAmbiguity, DateTimeResult, RawDateTimeTokens

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

MONTH_NAME = (
    r'(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?'
    r'|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)'
)
DATE_TEXT = r'\b' + MONTH_NAME + r'\.?\s+\d{1,2}(?:st|nd|rd|th)?\b(?:,?\s*\d{4}\b)?'
TIME_TEXT = r'\b\d{1,2}:\d{2}\s*[ap]\.?\s*m\b\.?'
DASH = r'(?:-|–|—|to)'

DATE_PATTERN = re.compile(
    r'\b(?P<month>' + MONTH_NAME + r')\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?\b'
    r'(?:,?\s*(?P<year>\d{4})\b)?',
    re.IGNORECASE
)
TIME_PATTERN = re.compile(
    r'\b(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>[ap])\.?\s*m\b',
    re.IGNORECASE
)
TIMED_RANGE_PATTERN = re.compile(
    r'(?:(?P<date>' + DATE_TEXT + r')[,\s]*(?:at\s+)?)?'
    r'(?P<start>' + TIME_TEXT + r')'
    r'(?:\s*' + DASH + r'\s*(?P<end>' + TIME_TEXT + r'))?',
    re.IGNORECASE
)
ALL_DAY_PATTERN = re.compile(r'\ball[\s-]+day\b', re.IGNORECASE)
URL_DATE_PATTERN = re.compile(r'/(\d{4})/(\d{2})/(\d{2})/')

Strategy = Callable[[str, bool, Optional[str]], Optional[DateTimeResult]]


class DateTimeNormalizer:
    """Resolve calendar date/time text into start/end timestamps."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the normalizer.

        Args:
            clock: Returns "now"; its year fills in dates written without
                one (default: current UTC time)
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.strategies: List[Tuple[str, Strategy]] = [
            ('all_day', self.match_all_day),
            ('timed_range', self.match_timed_range),
            ('date_only', self.match_date_only),
        ]

    def normalize(
        self,
        text: str,
        all_day_hint: bool = False,
        fallback_url: Optional[str] = None
    ) -> DateTimeResult:
        """
        Resolve a date/time string.

        Args:
            text: Raw date/time text from the detail page
            all_day_hint: True when "All day" was seen next to the text
            fallback_url: Page URL that may carry the date as /YYYY/MM/DD/

        Returns:
            DateTimeResult; ``start`` is None when nothing could be resolved
        """
        text = ' '.join((text or '').split())

        for name, strategy in self.strategies:
            result = strategy(text, all_day_hint, fallback_url)
            if result is not None:
                logger.debug(f"Date/time strategy '{name}' applied to '{text}'")
                return result

        logger.warning(f"Could not resolve any date from '{text}'")
        return DateTimeResult()

    def match_all_day(
        self, text: str, all_day_hint: bool, fallback_url: Optional[str]
    ) -> Optional[DateTimeResult]:
        if not (all_day_hint or ALL_DAY_PATTERN.search(text)):
            return None

        date_match = DATE_PATTERN.search(text)
        if not date_match:
            logger.warning(f"Could not extract date pattern from 'All day' string: '{text}'")
            return None

        tokens = RawDateTimeTokens(
            date_part=date_match.group(0),
            start_time_part=None,
            end_time_part=None,
            all_day=True
        )
        ambiguities: List[DateAmbiguity] = []
        event_date = self.parse_date(tokens.date_part, ambiguities)
        if event_date is None:
            return DateTimeResult()

        return DateTimeResult(
            start=_compose(event_date, 0, 0),
            end=None,
            is_all_day=True,
            ambiguities=ambiguities
        )

    def match_timed_range(
        self, text: str, all_day_hint: bool, fallback_url: Optional[str]
    ) -> Optional[DateTimeResult]:
        match = TIMED_RANGE_PATTERN.search(text)
        if not match:
            return None

        tokens = RawDateTimeTokens(
            date_part=match.group('date'),
            start_time_part=match.group('start'),
            end_time_part=match.group('end')
        )
        ambiguities: List[DateAmbiguity] = []

        if tokens.date_part:
            event_date = self.parse_date(tokens.date_part, ambiguities)
        else:
            logger.warning(
                f"Date part missing in date/time string: '{text}'. "
                f"Attempting to infer from URL: {fallback_url}"
            )
            event_date = date_from_url(fallback_url)
            if event_date is not None:
                ambiguities.append(DateAmbiguity.DATE_FROM_URL)

        if event_date is None:
            logger.error(f"Cannot parse time without a valid event date for string: '{text}'")
            return DateTimeResult()

        start_time = parse_time(tokens.start_time_part)
        if start_time is None:
            logger.warning(f"Could not parse start time part: '{tokens.start_time_part}'")
            return DateTimeResult()
        start = _compose(event_date, *start_time)

        end = None
        if tokens.end_time_part:
            end_time = parse_time(tokens.end_time_part)
            if end_time is None:
                logger.warning(f"Could not parse end time part: '{tokens.end_time_part}'")
            else:
                end = _compose(event_date, *end_time)
                if end < start:
                    # No rollover past midnight: keep the same day.
                    logger.warning(
                        f"End time {tokens.end_time_part} appears before start time "
                        f"{tokens.start_time_part}. Assuming same day."
                    )
                    ambiguities.append(DateAmbiguity.SAME_DAY_END)

        return DateTimeResult(start=start, end=end, is_all_day=False, ambiguities=ambiguities)

    def match_date_only(
        self, text: str, all_day_hint: bool, fallback_url: Optional[str]
    ) -> Optional[DateTimeResult]:
        date_match = DATE_PATTERN.search(text)
        if not date_match:
            return None

        logger.warning(f"No time found in '{text}'; treating as an all-day event")
        ambiguities: List[DateAmbiguity] = []
        event_date = self.parse_date(date_match.group(0), ambiguities)
        if event_date is None:
            return None

        return DateTimeResult(
            start=_compose(event_date, 0, 0),
            is_all_day=True,
            ambiguities=ambiguities
        )

    def parse_date(
        self, date_part: str, ambiguities: List[DateAmbiguity]
    ) -> Optional[date]:
        """
        Parse "Month Day[, Year]" into a date.

        A missing year is filled from the clock and flagged in ``ambiguities``.
        """
        match = DATE_PATTERN.search(date_part or '')
        if not match:
            logger.warning(f"Could not parse date part: '{date_part}'")
            return None

        month = MONTHS[match.group('month')[:3].lower()]
        day = int(match.group('day'))
        if match.group('year'):
            year = int(match.group('year'))
        else:
            year = self._clock().year
            ambiguities.append(DateAmbiguity.DEFAULT_YEAR)

        try:
            return date(year, month, day)
        except ValueError:
            logger.warning(f"Invalid calendar date: '{date_part}' (year {year})")
            return None


def parse_time(time_part: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Convert a 12-hour time such as "9:30pm" or "12:00 a.m." to (hour, minute).

    Returns:
        24-hour (hour, minute) tuple or None if the text is not a valid time
    """
    match = TIME_PATTERN.search(time_part or '')
    if not match:
        return None

    hour = int(match.group('hour'))
    minute = int(match.group('minute'))
    if not 1 <= hour <= 12 or minute > 59:
        return None

    hour = hour % 12
    if match.group('meridiem').lower() == 'p':
        hour += 12
    return hour, minute


def date_from_url(url: Optional[str]) -> Optional[date]:
    """Read the event date from a URL path containing /YYYY/MM/DD/."""
    match = URL_DATE_PATTERN.search(url or '')
    if not match:
        logger.error(f"Could not extract YYYY/MM/DD pattern from URL {url}")
        return None

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        logger.error(f"Failed to parse date from URL {url}")
        return None


def _compose(event_date: date, hour: int, minute: int) -> datetime:
    return datetime(
        event_date.year, event_date.month, event_date.day,
        hour, minute, tzinfo=timezone.utc
    )
