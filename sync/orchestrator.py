"""Sequential sync of the Manoa calendar into the event store."""
import logging
import time
from typing import Callable, Optional

from processor.errors import EventSyncError, FetchFailure
from processor.models import CandidateRef, RunSummary
from scraper.detail_page import DetailPageParser
from scraper.fetcher import PageFetcher
from scraper.list_page import BASE_URL, ListPageParser
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)

REQUEST_DELAY_SECONDS = 3.0


class EventSync:
    """
    Fetch the calendar index, then fetch, parse and save each event in turn.

    One request at a time with a fixed pause before every detail page. A
    failing event is logged and counted, and the run moves on to the next.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        list_parser: ListPageParser,
        detail_parser: DetailPageParser,
        store: DynamoDBManager,
        list_url: str = BASE_URL,
        delay_seconds: float = REQUEST_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.fetcher = fetcher
        self.list_parser = list_parser
        self.detail_parser = detail_parser
        self.store = store
        self.list_url = list_url
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._stop_requested = False

    def request_stop(self, signum=None, frame=None) -> None:
        """Finish the event in progress, then end the run. Usable as a signal handler."""
        logger.warning(f"Stop requested (signal {signum}); finishing current event")
        self._stop_requested = True

    def run(self) -> RunSummary:
        """
        Run one full sync.

        Returns:
            RunSummary with processed/succeeded/failed counts and the
            number of stale events removed
        """
        summary = RunSummary()

        try:
            list_html = self.fetcher.fetch(self.list_url)
        except FetchFailure as e:
            logger.error(f"Failed to fetch the main calendar page: {e}")
            summary.list_page_failed = True
            return summary

        candidates = self.list_parser.parse(list_html)
        summary.found = len(candidates)
        if not candidates:
            logger.info("No event links found on the main page.")

        for candidate in candidates:
            if self._stop_requested:
                break

            logger.info(
                f"Processing event {candidate.external_id} "
                f"({summary.processed + 1}/{summary.found})",
                extra={'event_id': candidate.external_id}
            )
            self._sleep(self.delay_seconds)
            if self._stop_requested:
                break

            summary.processed += 1
            outcome = self._process(candidate)
            if outcome is None:
                summary.succeeded += 1
            else:
                summary.record_failure(outcome)

        summary.stopped_early = self._stop_requested
        if summary.stopped_early:
            logger.warning("Stop requested; skipping cleanup")
        else:
            summary.stale_removed = self._remove_stale_events()

        logger.info(
            f"Sync summary: {summary.found} found, {summary.processed} processed, "
            f"{summary.succeeded} saved, {summary.failed} failed",
            extra={'outcomes': summary.outcomes, 'stale_removed': summary.stale_removed}
        )
        return summary

    def _process(self, candidate: CandidateRef) -> Optional[str]:
        """Fetch, parse and save one event. Returns None on success, else the failure outcome."""
        try:
            html = self.fetcher.fetch(candidate.url)
            record = self.detail_parser.parse(html, candidate.url, candidate.external_id)
            self.store.upsert(record)
        except EventSyncError as e:
            logger.warning(
                f"[{candidate.external_id}] Skipping {candidate.url}: {e}",
                extra={'event_id': candidate.external_id, 'outcome': e.outcome}
            )
            return e.outcome
        except Exception as e:
            logger.error(
                f"[{candidate.external_id}] Unhandled error during processing for {candidate.url}: {e}",
                extra={'event_id': candidate.external_id},
                exc_info=True
            )
            return EventSyncError.outcome
        return None

    def _remove_stale_events(self) -> int:
        try:
            return self.store.remove_past_events()
        except Exception as e:
            logger.error(f"An error occurred during the past events cleanup: {e}", exc_info=True)
            return 0
