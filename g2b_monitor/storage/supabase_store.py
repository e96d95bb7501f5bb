"""
Supabase store implementation.

Talks to the PostgREST endpoint of a Supabase project over plain HTTP.
"""

from typing import List, Dict, Any, Optional
import logging

import requests

from .base import BaseStore, StoreError

logger = logging.getLogger(__name__)

# PostgREST error code for "singular response requested but 0 rows returned"
NOT_FOUND_CODE = "PGRST116"
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


def quote_filter_value(value: str) -> str:
    """Quote a value for use inside a PostgREST ``in.(...)`` list."""
    escaped = str(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseStore(BaseStore):
    """
    Announcement table stored in Supabase.

    Uses a single ``requests.Session`` carrying the project's API key.
    """

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        """
        Initialize Supabase store.

        Args:
            config: ``store`` configuration section (url, key, table, timeout)
            session: Optional pre-built session (used in tests)
        """
        super().__init__(config)
        url = config.get('url')
        key = config.get('key')
        if not url or not key:
            raise StoreError("Supabase url and key are required")

        self.table = config.get('table', 'announcements')
        self.timeout = config.get('timeout', 15)
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{self.table}"

        self.session = session or requests.Session()
        self.session.headers.update({
            'apikey': key,
            'Authorization': f"Bearer {key}",
            'Content-Type': 'application/json',
        })

    def _request(self, method: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, self.endpoint, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreError(f"{method} {self.table} failed: {e}") from e

    @staticmethod
    def _error_from(response: requests.Response, action: str) -> StoreError:
        code = None
        message = response.text
        try:
            body = response.json()
            if isinstance(body, dict):
                code = body.get('code')
                message = body.get('message') or message
        except ValueError:
            pass
        return StoreError(f"{action} failed: {message}", code=code, status=response.status_code)

    def find_by_id(self, item_id: str) -> Optional[Dict[str, Any]]:
        response = self._request(
            'GET',
            params={'id': f"eq.{item_id}", 'select': 'id'},
            headers={'Accept': SINGLE_OBJECT_MEDIA_TYPE},
        )

        if response.ok:
            return response.json()

        error = self._error_from(response, f"Lookup of {item_id}")
        if error.code == NOT_FOUND_CODE:
            return None
        raise error

    def insert(self, record: Dict[str, Any]) -> None:
        response = self._request(
            'POST',
            json=record,
            headers={'Prefer': 'return=minimal'},
        )
        if not response.ok:
            raise self._error_from(response, f"Insert of {record.get('id')}")
        logger.debug(f"Inserted record {record.get('id')}")

    def mark_sent(self, ids: List[str]) -> None:
        if not ids:
            return

        id_list = ",".join(quote_filter_value(i) for i in ids)
        response = self._request(
            'PATCH',
            params={'id': f"in.({id_list})"},
            json={'is_sent': True},
            headers={'Prefer': 'return=minimal'},
        )
        if not response.ok:
            raise self._error_from(response, f"Marking {len(ids)} records as sent")
        logger.info(f"Marked {len(ids)} records as sent")
