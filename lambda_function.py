"""AWS Lambda handler serving the record event calendar grid."""
import json
import logging
import os
import time
from typing import Any, Dict

from calendar_grid.calendar_view import CalendarView
from calendar_grid.event_normalizer import EventNormalizer, order_by_created
from calendar_grid.grid_builder import to_civil_date
from calendar_grid.models import CalendarConfigError
from sources.record_feed import RecordFeedClient
from storage.event_repository import EventRepository


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def _parse_week_start_day(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CalendarConfigError(f"Invalid week start day: {value!r}")


def _parse_direction(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CalendarConfigError(f"Invalid navigation direction: {value!r}")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Build the calendar grid for a record's related events.

    Payload keys: recordId (required), referenceDate, navigate (+1/-1),
    weekStartDay, eventId (answer the date of one event) and date (answer
    the events of one day).

    Args:
        event: Invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    table_name = os.environ.get('TABLE_NAME', 'record-calendar-events')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    event_source = os.environ.get('EVENT_SOURCE', 'dynamodb').lower()
    feed_url = os.environ.get('EVENT_FEED_URL', '')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    region_name = os.environ.get('AWS_REGION', 'us-east-1')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    event = event or {}
    record_id = event.get('recordId')

    logger.info(
        "Calendar request started",
        extra={'record_id': record_id, 'event_source': event_source}
    )

    if not record_id:
        return _response(400, {
            'message': 'Invalid request',
            'error': 'recordId is required',
            'error_type': 'CalendarConfigError'
        })

    try:
        week_start_day = _parse_week_start_day(
            event.get('weekStartDay', os.environ.get('WEEK_START_DAY', '0'))
        )
        view = CalendarView(
            reference_date=event.get('referenceDate'),
            week_start_day=week_start_day
        )
        if event.get('navigate'):
            view.advance_month(_parse_direction(event['navigate']))
        if 'date' in event and to_civil_date(event['date']) is None:
            raise CalendarConfigError(f"Invalid date: {event['date']!r}")
    except CalendarConfigError as e:
        logger.warning(f"Rejected calendar request: {e}")
        return _response(400, {
            'message': 'Invalid request',
            'error': str(e),
            'error_type': type(e).__name__
        })

    try:
        logger.info(f"Fetching related records from {event_source}")
        if event_source == 'feed':
            client = RecordFeedClient(feed_url, timeout=timeout_seconds)
            start_date, end_date = view.builder.grid_bounds(view.reference_date)
            raw_records = client.fetch_related_records(record_id, start_date, end_date)
        else:
            repository = EventRepository(table_name, region_name=region_name)
            raw_records = repository.get_related_events(record_id)
    except Exception as e:
        logger.error(
            f"Failed to fetch related records: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        duration = time.time() - start_time
        return _response(500, {
            'message': 'Failed to fetch calendar events',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })

    records = order_by_created(EventNormalizer().normalize_records(raw_records))
    view.load_events(records)

    body = view.to_dict()
    if 'eventId' in event:
        found = view.find_date_for_event(event['eventId'])
        body['eventDate'] = found.isoformat() if found else None
    if 'date' in event:
        body['eventsForDate'] = [
            record.payload for record in view.find_events_for_date(event['date'])
        ]

    duration = time.time() - start_time
    body['duration_seconds'] = round(duration, 2)

    logger.info(
        "Calendar request completed",
        extra={
            'duration_seconds': round(duration, 2),
            'weeks': len(view.weeks),
            'records': len(records)
        }
    )

    return _response(200, body)
