"""Exceptions raised while syncing calendar events.

Each failure is scoped to a single candidate: the orchestrator catches
these, counts them by ``outcome`` and moves on to the next event.
"""
from typing import Iterable, Optional


class EventSyncError(Exception):
    """Base class for calendar sync failures."""
    outcome = 'unexpected_error'


class FetchFailure(EventSyncError):
    """A page could not be downloaded (network error or non-2xx status)."""
    outcome = 'fetch_failure'

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ''):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        message = f"Failed to fetch {url}"
        if status_code is not None:
            message += f" (status {status_code})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ParseFailure(EventSyncError):
    """A detail page could not be turned into a complete record."""

    def __init__(self, external_id: str, message: str):
        self.external_id = external_id
        super().__init__(f"[{external_id}] {message}")


class MissingContainer(ParseFailure):
    """The detail page has no event content container."""
    outcome = 'missing_container'

    def __init__(self, external_id: str, selector: str):
        self.selector = selector
        super().__init__(external_id, f"Could not find main container {selector}")


class IncompleteRecord(ParseFailure):
    """Title or start date/time could not be resolved."""
    outcome = 'incomplete_record'

    def __init__(self, external_id: str, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            external_id,
            f"Missing required field(s): {', '.join(self.missing)}"
        )


class PersistenceFailure(EventSyncError):
    """Writing a record to the store failed."""
    outcome = 'persistence_failure'

    def __init__(self, event_id: str, reason: str):
        self.event_id = event_id
        super().__init__(f"[{event_id}] Error upserting event: {reason}")
