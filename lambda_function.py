"""Entry points for the Manoa Events Calendar Sync (AWS Lambda and CLI)."""
import json
import logging
import os
import signal
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict

from processor.models import RunSummary
from scraper.detail_page import DetailPageParser
from scraper.fetcher import PageFetcher
from scraper.list_page import ListPageParser
from storage.dynamodb_manager import DynamoDBManager
from sync.orchestrator import EventSync

# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_LOG_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any ``extra`` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class Settings:
    """Runtime configuration read from the environment."""

    table_name: str
    log_level: str
    timeout_seconds: int


def load_settings() -> Settings:
    """Read configuration from environment variables."""
    return Settings(
        table_name=os.environ.get('TABLE_NAME', 'manoa-events'),
        log_level=os.environ.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '20'))
    )


def build_sync(settings: Settings, store: DynamoDBManager) -> EventSync:
    """Wire the scraper components around an open store."""
    return EventSync(
        fetcher=PageFetcher(timeout=settings.timeout_seconds),
        list_parser=ListPageParser(),
        detail_parser=DetailPageParser(),
        store=store
    )


def _statistics(summary: RunSummary, duration: float) -> Dict[str, Any]:
    return {
        'events_found': summary.found,
        'events_processed': summary.processed,
        'events_saved': summary.succeeded,
        'events_failed': summary.failed,
        'failures_by_outcome': summary.outcomes,
        'stale_events_removed': summary.stale_removed,
        'stopped_early': summary.stopped_early,
        'duration_seconds': round(duration, 2)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Manoa Events Calendar Sync.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'table_name': settings.table_name,
            'timeout_seconds': settings.timeout_seconds
        }
    )

    try:
        with DynamoDBManager(table_name=settings.table_name) as store:
            summary = build_sync(settings, store).run()

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Sync failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time

    if summary.list_page_failed:
        return {
            'statusCode': 502,
            'body': json.dumps({
                'message': 'Failed to fetch calendar index page',
                'note': 'Previously saved events remain in DynamoDB',
                'duration_seconds': round(duration, 2)
            })
        }

    statistics = _statistics(summary, duration)
    logger.info("Lambda execution completed successfully", extra=statistics)

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Sync completed successfully',
            'statistics': statistics
        })
    }


def main() -> int:
    """Console entry point: run one sync, stopping cleanly on SIGINT/SIGTERM."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    with DynamoDBManager(table_name=settings.table_name) as store:
        sync = build_sync(settings, store)
        signal.signal(signal.SIGINT, sync.request_stop)
        signal.signal(signal.SIGTERM, sync.request_stop)
        summary = sync.run()

    logger.info("Sync finished", extra=_statistics(summary, time.time() - start_time))
    return 1 if summary.list_page_failed else 0


if __name__ == '__main__':
    sys.exit(main())
