"""Unit tests for RecordFeedClient."""
from datetime import date
from unittest.mock import patch

import pytest
import responses
from requests.exceptions import RequestException

from sources.record_feed import RecordFeedClient


FEED_URL = "https://calendar.example.com/api/related-records"

RECORDS = [
    {
        'Id': 'event-1',
        'Subject': 'Event 1',
        'StartDateTime': '2025-09-01T00:00:00.000Z'
    },
    {
        'Id': 'event-2',
        'Subject': 'Event 2',
        'StartDateTime': '2025-09-15T00:00:00.000Z'
    }
]


class TestRecordFeedClient:
    """Test cases for RecordFeedClient class."""

    @responses.activate
    def test_fetch_related_records_success(self):
        """Test records are fetched with the expected query parameters."""
        responses.add(responses.GET, FEED_URL, json=RECORDS, status=200)

        client = RecordFeedClient(FEED_URL, timeout=30)
        records = client.fetch_related_records(
            'parent-1', date(2025, 8, 31), date(2025, 10, 4)
        )

        assert [r['Id'] for r in records] == ['event-1', 'event-2']
        request = responses.calls[0].request
        assert 'parentRecordId=parent-1' in request.url
        assert 'relatedListId=Events' in request.url
        assert 'start=2025-08-31' in request.url
        assert 'end=2025-10-04' in request.url

    @responses.activate
    def test_fetch_related_records_wrapped_payload(self):
        """Test a {'records': [...]} body is unwrapped."""
        responses.add(responses.GET, FEED_URL, json={'records': RECORDS}, status=200)

        client = RecordFeedClient(FEED_URL)
        records = client.fetch_related_records('parent-1')

        assert len(records) == 2
        assert 'start=' not in responses.calls[0].request.url

    @responses.activate
    def test_fetch_related_records_rejects_non_list(self):
        """Test a body without records raises ValueError."""
        responses.add(responses.GET, FEED_URL, json={'status': 'ok'}, status=200)

        client = RecordFeedClient(FEED_URL)
        with pytest.raises(ValueError):
            client.fetch_related_records('parent-1')

    @responses.activate
    @patch('sources.record_feed.time.sleep')
    def test_fetch_with_retry_success(self, mock_sleep):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, FEED_URL, body="Server Error", status=500)
        responses.add(responses.GET, FEED_URL, body="Server Error", status=503)
        responses.add(responses.GET, FEED_URL, json=RECORDS, status=200)

        client = RecordFeedClient(FEED_URL)
        records = client.fetch_related_records('parent-1')

        assert len(records) == 2
        assert len(responses.calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    @responses.activate
    @patch('sources.record_feed.time.sleep')
    def test_fetch_all_retries_fail(self, mock_sleep):
        """Test the last error is raised once retries run out."""
        for _ in range(3):
            responses.add(responses.GET, FEED_URL, body="Server Error", status=500)

        client = RecordFeedClient(FEED_URL)
        with pytest.raises(RequestException):
            client.fetch_related_records('parent-1')

        assert len(responses.calls) == 3
        assert mock_sleep.call_count == 2
