"""DynamoDB manager for event storage operations."""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.errors import PersistenceFailure
from processor.models import AttendanceType, EventRecord

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ('start_date_time', 'end_date_time', 'last_scraped_at')
OPTIONAL_FIELDS = (
    'end_date_time', 'location', 'location_virtual_url', 'description',
    'organizer_sponsor', 'contact_name', 'contact_phone', 'contact_email',
    'cost_admission', 'event_page_url',
)


class DynamoDBManager:
    """
    Store for scraped events, keyed by the calendar's external id.

    Use it as a context manager so the client is released when the run
    ends, including when the run is interrupted.
    """

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
            clock: Returns the current time (default: UTC now)
        """
        self.table_name = table_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    def __enter__(self) -> 'DynamoDBManager':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying client connections."""
        self.dynamodb.meta.client.close()
        logger.info("DynamoDB client closed.")

    def upsert(self, record: EventRecord) -> bool:
        """
        Insert or fully replace an event.

        Fields missing from ``record`` are removed from the stored item; the
        latest scrape is authoritative. ``last_scraped_at`` is always set to
        now, and timestamps that are not valid are stored as null.

        Args:
            record: Parsed event

        Returns:
            True if the event was new, False if an existing item was replaced

        Raises:
            PersistenceFailure: If DynamoDB rejects the write
        """
        record.last_scraped_at = self._clock()
        item = self._record_to_item(record)

        try:
            response = self.table.put_item(Item=item, ReturnValues='ALL_OLD')
        except ClientError as e:
            logger.error(f"[{record.event_id}] Error upserting event: {e}")
            raise PersistenceFailure(record.event_id, str(e)) from e

        created = 'Attributes' not in response
        logger.info(
            f"[{record.event_id}] Successfully {'inserted' if created else 'updated'} "
            f"event: {record.title}"
        )
        return created

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        """Fetch a single event by id, or None if it is not stored."""
        try:
            response = self.table.get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise
        item = response.get('Item')
        return self._item_to_record(item) if item else None

    def get_all_events(self) -> Dict[str, EventRecord]:
        """
        Retrieve all events from DynamoDB using Scan operation.

        Returns:
            Dictionary mapping event_id to EventRecord objects
        """
        logger.info("Scanning DynamoDB table for all events")
        events = {}

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        for item in items:
            event = self._item_to_record(item)
            if event:
                events[event.event_id] = event

        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def remove_past_events(self, now: Optional[datetime] = None) -> int:
        """
        Delete events whose end date/time has passed.

        Events without an end time are kept.

        Args:
            now: Cut-off time (default: the manager's clock)

        Returns:
            Count of deleted events
        """
        now = now or self._clock()
        logger.info(f"Removing past events (end_date_time < {now.isoformat()})...")

        past_ids = [
            event_id for event_id, event in self.get_all_events().items()
            if event.end_date_time is not None and event.end_date_time < now
        ]
        count = self.batch_delete_events(past_ids)
        logger.info(f"Successfully removed {count} past events.")
        return count

    def batch_delete_events(self, event_ids: List[str]) -> int:
        """
        Delete events from DynamoDB in batches of 25 items.

        Args:
            event_ids: List of event IDs to delete

        Returns:
            Count of successfully deleted events
        """
        if not event_ids:
            return 0

        logger.info(f"Deleting {len(event_ids)} events from DynamoDB")
        success_count = 0

        for i in range(0, len(event_ids), self.BATCH_SIZE):
            batch = event_ids[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for event_id in batch:
                        writer.delete_item(Key={'event_id': event_id})
                success_count += len(batch)

            except ClientError as e:
                logger.error(
                    f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully deleted {success_count} events")
        return success_count

    def _record_to_item(self, record: EventRecord) -> Dict[str, Any]:
        """
        Convert EventRecord object to DynamoDB item.

        Args:
            record: EventRecord object

        Returns:
            DynamoDB item dictionary
        """
        start = _to_timestamp(record.start_date_time)
        end = _to_timestamp(record.end_date_time)
        if record.start_date_time is not None and start is None:
            logger.error(f"[{record.event_id}] Invalid start_date_time before saving. Setting to null.")
        if end is not None and start is None:
            logger.warning(f"[{record.event_id}] end_date_time without start_date_time. Setting to null.")
            end = None

        item = {
            'event_id': record.event_id,
            'source_url': record.source_url,
            'title': record.title,
            'start_date_time': start,
            'all_day': bool(record.all_day),
            'attendance_type': AttendanceType(record.attendance_type).value,
            'last_scraped_at': _to_timestamp(record.last_scraped_at),
        }

        # Add optional fields if present
        values = {field: getattr(record, field) for field in OPTIONAL_FIELDS}
        values['end_date_time'] = end
        for field, value in values.items():
            if value:
                item[field] = value

        return item

    def _item_to_record(self, item: Dict[str, Any]) -> Optional[EventRecord]:
        """
        Convert DynamoDB item to EventRecord object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            EventRecord object or None if conversion fails
        """
        try:
            values = {field: item.get(field) for field in OPTIONAL_FIELDS}
            for field in TIMESTAMP_FIELDS:
                values[field] = _from_timestamp(item.get(field))
            return EventRecord(
                event_id=item['event_id'],
                source_url=item['source_url'],
                title=item['title'],
                all_day=bool(item.get('all_day', False)),
                attendance_type=AttendanceType(item.get('attendance_type', 'IN_PERSON')),
                **values
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to EventRecord: {e}")
            return None


def _to_timestamp(value: Any) -> Optional[str]:
    """Serialize a datetime (or ISO string) as UTC ISO 8601; invalid values become None."""
    if isinstance(value, str):
        value = _from_timestamp(value)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
