"""Unit tests for the DynamoDB key-value store."""
import boto3
import pytest
from moto import mock_aws

from processor.errors import StoreError
from storage.dynamodb_store import DynamoDBKeyValueStore

TABLE_NAME = 'test-woodlands-events'


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now=1_900_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'key', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'key', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(dynamodb_table, clock):
    """Store bound to the mock table."""
    return DynamoDBKeyValueStore(TABLE_NAME, region_name='us-east-1', clock=clock)


class TestDynamoDBKeyValueStore:
    """Test cases for DynamoDBKeyValueStore."""

    def test_set_and_get(self, store):
        """Test writing and reading back a value."""
        value = [{'id': 'township-20300115-garden', 'title': 'Garden'}]

        store.set('events:2030-01-15', value)

        assert store.get('events:2030-01-15') == value

    def test_get_missing_key(self, store):
        """Test that a missing key reads as None."""
        assert store.get('events:2030-01-01') is None

    def test_set_overwrites(self, store):
        """Test that a second write replaces the first."""
        store.set('events:meta', {'totalEvents': 1})
        store.set('events:meta', {'totalEvents': 2})

        assert store.get('events:meta') == {'totalEvents': 2}

    def test_ttl_is_written_as_expires_at(self, store, dynamodb_table, clock):
        """Test that the TTL is stored as an epoch expires_at attribute."""
        store.set('events:2030-01-15', [], ttl_seconds=3600)

        item = dynamodb_table.get_item(Key={'key': 'events:2030-01-15'})['Item']
        assert int(item['expires_at']) == clock.now + 3600

    def test_no_ttl_means_no_expiry(self, store, dynamodb_table):
        """Test that writes without a TTL carry no expiry."""
        store.set('scrape:last:township', '2030-01-15T06:00:00+00:00')

        item = dynamodb_table.get_item(Key={'key': 'scrape:last:township'})['Item']
        assert 'expires_at' not in item

    def test_expired_item_reads_as_absent(self, store, clock):
        """Test that items past expiry read as None before DynamoDB sweeps them."""
        store.set('events:2030-01-15', [{'id': 'a'}], ttl_seconds=60)

        clock.now += 61

        assert store.get('events:2030-01-15') is None

    def test_set_many_spans_batches(self, store):
        """Test batch writes larger than one 25-item batch."""
        items = {f"event:{i}": {'id': str(i)} for i in range(60)}

        store.set_many(items, ttl_seconds=3600)

        assert store.get('event:0') == {'id': '0'}
        assert store.get('event:59') == {'id': '59'}

    def test_set_many_empty_is_noop(self, store):
        """Test that writing no items does nothing."""
        store.set_many({})

    def test_missing_table_raises_store_error(self, dynamodb_table):
        """Test that DynamoDB client errors surface as StoreError."""
        store = DynamoDBKeyValueStore('missing-table', region_name='us-east-1')

        with pytest.raises(StoreError):
            store.get('events:meta')

        with pytest.raises(StoreError):
            store.set('events:meta', {})
