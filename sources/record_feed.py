"""HTTP client fetching related event records from a JSON feed."""
import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class RecordFeedClient:
    """Client for a JSON endpoint serving a parent record's related events."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        related_list_name: str = 'Events',
        max_retries: int = 3,
        base_delay: float = 1
    ):
        """
        Initialize the feed client.

        Args:
            base_url: Feed endpoint URL
            timeout: HTTP request timeout in seconds (default: 30)
            related_list_name: Related list to read records from
            max_retries: Number of attempts before giving up
            base_delay: First retry delay in seconds, doubled per attempt
        """
        self.base_url = base_url
        self.timeout = timeout
        self.related_list_name = related_list_name
        self.max_retries = max_retries
        self.base_delay = base_delay

    def fetch_related_records(
        self,
        parent_record_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch the raw event records related to a parent record.

        Args:
            parent_record_id: Id of the record whose events are shown
            start_date: Optional first date of interest (inclusive)
            end_date: Optional last date of interest (inclusive)

        Returns:
            List of raw record dictionaries

        Raises:
            requests.RequestException: If all retry attempts fail
            ValueError: If the feed does not return a JSON list
        """
        params = {
            'parentRecordId': parent_record_id,
            'relatedListId': self.related_list_name
        }
        if start_date:
            params['start'] = start_date.isoformat()
        if end_date:
            params['end'] = end_date.isoformat()

        logger.info(f"Fetching related records for {parent_record_id}")
        payload = self._get_json(params)

        if isinstance(payload, dict):
            payload = payload.get('records', payload.get('data'))
        if not isinstance(payload, list):
            raise ValueError("Record feed did not return a list of records")

        records = [record for record in payload if isinstance(record, dict)]
        logger.info(f"Successfully fetched {len(records)} records")
        return records

    def _get_json(self, params: Dict[str, str]) -> Any:
        """
        GET the feed with exponential-backoff retry.

        Args:
            params: Query string parameters

        Returns:
            Decoded JSON body

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching record feed (attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.get(
                    self.base_url,
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise
