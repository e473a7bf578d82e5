"""DynamoDB-backed key-value store."""
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.errors import StoreError
from storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class DynamoDBKeyValueStore(KeyValueStore):
    """
    Key-value store on a DynamoDB table.

    The table uses ``key`` (string) as its partition key. Values are kept
    as JSON strings in ``value``; ``expires_at`` holds the epoch expiry and
    should be configured as the table's TTL attribute.
    """

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(
        self,
        table_name: str,
        region_name: Optional[str] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region, or None for the boto3 default
            clock: Time source used for expiry checks
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        self._clock = clock
        logger.info(f"Initialized DynamoDBKeyValueStore for table: {table_name}")

    def get(self, key: str) -> Optional[Any]:
        """
        Read a value, ignoring items past their expiry.

        DynamoDB deletes expired items lazily, so they can still be
        returned by GetItem for a while.

        Raises:
            StoreError: If the read fails
        """
        try:
            response = self.table.get_item(Key={'key': key})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading key {key}: {e}")
            raise StoreError(f"Failed to read {key}: {e}") from e

        item = response.get('Item')
        if not item:
            return None

        expires_at = item.get('expires_at')
        if expires_at is not None and int(expires_at) <= self._clock():
            return None

        return json.loads(item['value'])

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """
        Raises:
            StoreError: If the write fails
        """
        try:
            self.table.put_item(Item=self._to_item(key, value, ttl_seconds))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing key {key}: {e}")
            raise StoreError(f"Failed to write {key}: {e}") from e

    def set_many(self, items: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """
        Write items in batches of 25.

        Raises:
            StoreError: On the first batch that fails
        """
        if not items:
            return

        entries = list(items.items())
        logger.info(f"Writing {len(entries)} items to DynamoDB")

        for i in range(0, len(entries), self.BATCH_SIZE):
            batch = entries[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for key, value in batch:
                        writer.put_item(Item=self._to_item(key, value, ttl_seconds))
            except (ClientError, BotoCoreError) as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                raise StoreError(
                    f"Failed to write batch {i // self.BATCH_SIZE + 1}: {e}"
                ) from e

    def _to_item(self, key: str, value: Any, ttl_seconds: Optional[int]) -> dict:
        item = {
            'key': key,
            'value': json.dumps(value),
        }

        if ttl_seconds:
            item['expires_at'] = int(self._clock()) + int(ttl_seconds)

        return item
