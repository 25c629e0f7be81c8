"""DynamoDB repository for related event records."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class EventRepository:
    """Reads and writes event records grouped under a parent record."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region; boto3's default resolution when None
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized EventRepository for table: {table_name}")

    def get_related_events(self, parent_record_id: str) -> List[Dict[str, Any]]:
        """
        Retrieve all event records of a parent record.

        Args:
            parent_record_id: Id of the record whose events are shown

        Returns:
            List of raw record dictionaries
        """
        logger.info(f"Querying events related to {parent_record_id}")

        try:
            response = self.table.query(
                KeyConditionExpression=Key('parent_record_id').eq(parent_record_id)
            )
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.query(
                    KeyConditionExpression=Key('parent_record_id').eq(parent_record_id),
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error querying DynamoDB table: {e}")
            raise

        records = [self._item_to_record(item) for item in items]

        logger.info(f"Retrieved {len(records)} events from DynamoDB")
        return records

    def batch_write_records(
        self, parent_record_id: str, records: List[Dict[str, Any]]
    ) -> int:
        """
        Write event records under a parent record in batches of 25 items.

        Args:
            parent_record_id: Id of the owning record
            records: Raw record dictionaries, each with an 'Id'

        Returns:
            Count of successfully written records
        """
        if not records:
            return 0

        logger.info(f"Writing {len(records)} records to DynamoDB")
        success_count = 0

        for i in range(0, len(records), self.BATCH_SIZE):
            batch = records[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for record in batch:
                        if not record.get('Id'):
                            logger.warning("Skipping record without Id")
                            continue
                        item = self._record_to_item(parent_record_id, record)
                        writer.put_item(Item=item)
                        success_count += 1

            except ClientError as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully wrote {success_count} records")
        return success_count

    def _item_to_record(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert DynamoDB item to a raw record dictionary.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Record keyed by the related list's field names
        """
        record = {
            key: self._from_dynamodb(value) for key, value in item.items()
            if key not in ('parent_record_id', 'event_id')
        }
        record['Id'] = item['event_id']
        return record

    def _record_to_item(
        self, parent_record_id: str, record: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Convert a raw record dictionary to a DynamoDB item.

        Args:
            parent_record_id: Id of the owning record
            record: Raw record dictionary

        Returns:
            DynamoDB item dictionary
        """
        item = {
            key: value for key, value in record.items()
            if key != 'Id' and value is not None
        }
        item['parent_record_id'] = parent_record_id
        item['event_id'] = str(record['Id'])
        return item

    @staticmethod
    def _from_dynamodb(value: Any) -> Any:
        if isinstance(value, Decimal):
            return int(value) if value == value.to_integral_value() else float(value)
        return value
