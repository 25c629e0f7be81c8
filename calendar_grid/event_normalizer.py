"""Normalizer turning raw related-list records into typed event records."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from calendar_grid.models import EventRecord

logger = logging.getLogger(__name__)


TIMESTAMP_FORMATS = [
    '%Y-%m-%dT%H:%M:%S.%f%z',   # 2025-09-01T09:00:00.000+0000
    '%Y-%m-%dT%H:%M:%S%z',      # 2025-09-01T09:00:00Z
    '%Y-%m-%dT%H:%M:%S.%f',     # naive, assumed UTC
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Naive values are taken to be UTC already.

    Args:
        value: datetime, date, epoch milliseconds or timestamp string

    Returns:
        Aware UTC datetime or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        parsed = _parse_timestamp_string(value.strip())
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_timestamp_string(text: str) -> Optional[datetime]:
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        pass

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    return None


class EventNormalizer:
    """Maps field-name keyed records onto EventRecord values."""

    def __init__(
        self,
        id_field: str = 'Id',
        start_field: str = 'StartDateTime',
        subject_field: str = 'Subject',
        created_field: str = 'CreatedDate'
    ):
        """
        Initialize the normalizer with the record schema's field names.

        Args:
            id_field: Field holding the unique event id
            start_field: Field holding the start timestamp
            subject_field: Field holding the event subject
            created_field: Field holding the record creation timestamp
        """
        self.id_field = id_field
        self.start_field = start_field
        self.subject_field = subject_field
        self.created_field = created_field

    def normalize_records(
        self, raw_records: Iterable[Dict[str, Any]]
    ) -> List[EventRecord]:
        """
        Convert raw records into EventRecord objects.

        Records without an id are dropped. Records with a missing or
        malformed start timestamp are kept with start_timestamp set to None
        so they never land on a day.

        Args:
            raw_records: Iterable of raw record dictionaries

        Returns:
            List of EventRecord objects in input order
        """
        records = []
        total = 0

        for raw in raw_records:
            total += 1
            record = self.normalize_record(raw)
            if record is not None:
                records.append(record)

        logger.info(
            f"Normalized {len(records)} event records out of {total} raw records"
        )
        return records

    def normalize_record(self, raw: Dict[str, Any]) -> Optional[EventRecord]:
        """
        Convert a single raw record.

        Args:
            raw: Raw record dictionary

        Returns:
            EventRecord or None if the record has no id
        """
        if not isinstance(raw, dict):
            logger.warning(f"Skipping record that is not a mapping: {raw!r}")
            return None

        event_id = raw.get(self.id_field)
        if event_id is None or not str(event_id).strip():
            logger.warning(f"Record missing required field: {self.id_field}")
            return None
        event_id = str(event_id)

        raw_start = raw.get(self.start_field)
        start_timestamp = parse_timestamp(raw_start)
        if start_timestamp is None:
            logger.warning(
                f"Invalid or missing {self.start_field} for event '{event_id}': "
                f"{raw_start!r}"
            )

        subject = raw.get(self.subject_field)

        return EventRecord(
            id=event_id,
            start_timestamp=start_timestamp,
            subject=str(subject) if subject is not None else None,
            created_date=parse_timestamp(raw.get(self.created_field)),
            payload=raw
        )


def order_by_created(records: Iterable[EventRecord]) -> List[EventRecord]:
    """
    Order records by creation time, oldest first.

    Records without a created date go last. Ties keep their input order.

    Args:
        records: EventRecord objects

    Returns:
        New sorted list
    """
    return sorted(
        records,
        key=lambda record: (
            record.created_date is None,
            record.created_date.timestamp() if record.created_date else 0
        )
    )
