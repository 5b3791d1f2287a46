"""Data models for the Manoa calendar sync."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class AttendanceType(str, Enum):
    """How an event can be attended."""
    IN_PERSON = 'IN_PERSON'
    ONLINE = 'ONLINE'
    HYBRID = 'HYBRID'


class DateAmbiguity(str, Enum):
    """Non-fatal assumptions made while resolving a date/time string."""
    DEFAULT_YEAR = 'default_year'
    DATE_FROM_URL = 'date_from_url'
    SAME_DAY_END = 'same_day_end'


@dataclass
class CandidateRef:
    """Event reference found on the calendar index page."""
    url: str
    external_id: str


@dataclass
class RawDateTimeTokens:
    """Pieces matched out of a date/time string, before conversion."""
    date_part: Optional[str]
    start_time_part: Optional[str]
    end_time_part: Optional[str]
    all_day: bool = False


@dataclass
class DateTimeResult:
    """Resolved timestamps for one event."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    is_all_day: bool = False
    ambiguities: List[DateAmbiguity] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.start is not None


@dataclass
class ContactInfo:
    """Contact details pulled from a "More Information" block."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass
class EventRecord:
    """Parsed event, keyed by the calendar's external id."""
    event_id: str
    source_url: str
    title: str
    start_date_time: Optional[datetime]
    end_date_time: Optional[datetime] = None
    all_day: bool = False
    location: Optional[str] = None
    location_virtual_url: Optional[str] = None
    attendance_type: AttendanceType = AttendanceType.IN_PERSON
    description: Optional[str] = None
    organizer_sponsor: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    cost_admission: Optional[str] = None
    event_page_url: Optional[str] = None
    last_scraped_at: Optional[datetime] = None


@dataclass
class RunSummary:
    """Result of one sync run."""
    found: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    stale_removed: int = 0
    stopped_early: bool = False
    list_page_failed: bool = False

    def record_failure(self, outcome: str) -> None:
        self.failed += 1
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1
