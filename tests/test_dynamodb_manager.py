"""Unit tests for DynamoDB manager."""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from processor.errors import PersistenceFailure
from processor.models import AttendanceType, EventRecord
from storage.dynamodb_manager import DynamoDBManager

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that moves forward one minute per call."""

    def __init__(self, start=NOW):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


@pytest.fixture
def dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-manoa-events',
            KeySchema=[
                {'AttributeName': 'event_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def dynamodb_manager(dynamodb_table):
    """Create DynamoDBManager instance with mock table."""
    return DynamoDBManager('test-manoa-events', clock=FakeClock())


@pytest.fixture
def sample_record():
    """Create a sample EventRecord for testing."""
    return EventRecord(
        event_id='41234',
        source_url='https://www.hawaii.edu/calendar/manoa/2026/11/05/41234.html?et_id=41234',
        title='Spring Faculty Recital',
        start_date_time=datetime(2026, 11, 5, 19, 30, tzinfo=timezone.utc),
        end_date_time=datetime(2026, 11, 5, 21, 0, tzinfo=timezone.utc),
        location='Orvis Auditorium',
        attendance_type=AttendanceType.IN_PERSON,
        description='Chamber music.',
        organizer_sponsor='Department of Music',
        contact_email='music@hawaii.edu',
        cost_admission='$15'
    )


def test_upsert_inserts_new_record(dynamodb_manager, sample_record):
    """Test upsert creates a record and stamps last_scraped_at."""
    created = dynamodb_manager.upsert(sample_record)

    assert created is True
    stored = dynamodb_manager.get_event('41234')
    assert stored.title == 'Spring Faculty Recital'
    assert stored.start_date_time == sample_record.start_date_time
    assert stored.end_date_time == sample_record.end_date_time
    assert stored.attendance_type == AttendanceType.IN_PERSON
    assert stored.last_scraped_at == NOW


def test_upsert_twice_is_idempotent(dynamodb_manager, sample_record):
    """Test repeated upserts only change last_scraped_at."""
    dynamodb_manager.upsert(replace(sample_record))
    first = dynamodb_manager.get_event('41234')

    created = dynamodb_manager.upsert(replace(sample_record))
    second = dynamodb_manager.get_event('41234')

    assert created is False
    assert len(dynamodb_manager.get_all_events()) == 1
    assert second.last_scraped_at > first.last_scraped_at
    assert replace(second, last_scraped_at=None) == replace(first, last_scraped_at=None)


def test_upsert_replaces_all_fields(dynamodb_manager, sample_record):
    """Test fields missing from a later scrape are cleared, not merged."""
    dynamodb_manager.upsert(sample_record)

    rescraped = replace(sample_record, cost_admission=None, organizer_sponsor=None, title='Recital')
    dynamodb_manager.upsert(rescraped)

    stored = dynamodb_manager.get_event('41234')
    assert stored.title == 'Recital'
    assert stored.cost_admission is None
    assert stored.organizer_sponsor is None
    assert stored.contact_email == 'music@hawaii.edu'


def test_upsert_coerces_invalid_timestamps(dynamodb_manager, sample_record):
    """Test unparseable timestamps are stored as null instead of rejected."""
    record = replace(sample_record, end_date_time='not a date')

    dynamodb_manager.upsert(record)

    stored = dynamodb_manager.get_event('41234')
    assert stored.end_date_time is None
    assert stored.start_date_time == sample_record.start_date_time


def test_upsert_accepts_iso_strings(dynamodb_manager, sample_record):
    """Test ISO strings are normalized to UTC timestamps."""
    record = replace(sample_record, start_date_time='2026-11-05T09:30:00-10:00', end_date_time=None)

    dynamodb_manager.upsert(record)

    stored = dynamodb_manager.get_event('41234')
    assert stored.start_date_time == datetime(2026, 11, 5, 19, 30, tzinfo=timezone.utc)


def test_upsert_drops_end_without_start(dynamodb_manager, sample_record):
    """Test an end time without a valid start time is nulled."""
    record = replace(sample_record, start_date_time='garbage')

    dynamodb_manager.upsert(record)

    stored = dynamodb_manager.get_event('41234')
    assert stored.start_date_time is None
    assert stored.end_date_time is None


def test_upsert_client_error_raises_persistence_failure(dynamodb_table, sample_record):
    """Test write errors are wrapped in PersistenceFailure."""
    manager = DynamoDBManager('missing-table')

    with pytest.raises(PersistenceFailure) as exc_info:
        manager.upsert(sample_record)

    assert exc_info.value.event_id == '41234'


def test_get_event_missing(dynamodb_manager):
    """Test unknown id returns None."""
    assert dynamodb_manager.get_event('nope') is None


def test_get_all_events_empty_table(dynamodb_manager):
    """Test get_all_events returns empty dict for empty table."""
    assert dynamodb_manager.get_all_events() == {}


def test_remove_past_events(dynamodb_manager, sample_record):
    """Test only events that already ended are removed."""
    past = replace(
        sample_record,
        event_id='1',
        start_date_time=NOW - timedelta(days=2),
        end_date_time=NOW - timedelta(days=2, hours=-1)
    )
    future = replace(sample_record, event_id='2')
    no_end = replace(
        sample_record, event_id='3',
        start_date_time=NOW - timedelta(days=5), end_date_time=None, all_day=True
    )
    for record in (past, future, no_end):
        dynamodb_manager.upsert(record)

    removed = dynamodb_manager.remove_past_events(now=NOW)

    assert removed == 1
    assert set(dynamodb_manager.get_all_events()) == {'2', '3'}


def test_batch_delete_events_large_batch(dynamodb_manager, sample_record):
    """Test deletes across more than one 25-item batch."""
    for i in range(30):
        dynamodb_manager.upsert(replace(sample_record, event_id=f'event-{i}'))

    count = dynamodb_manager.batch_delete_events([f'event-{i}' for i in range(30)])

    assert count == 30
    assert dynamodb_manager.get_all_events() == {}


def test_context_manager_closes_client(dynamodb_table):
    """Test leaving the with-block releases the client."""
    with DynamoDBManager('test-manoa-events') as manager:
        client = manager.dynamodb.meta.client
        closed = []
        original_close = client.close
        client.close = lambda: (closed.append(True), original_close())

    assert closed == [True]
