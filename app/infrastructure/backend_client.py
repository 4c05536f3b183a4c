"""
Backend data API client - source of schedules and accounts.

Endpoints:
    GET {BACKEND_API_URL}/recurring-schedules -> [RecurringSchedule JSON]
    GET {BACKEND_API_URL}/accounts            -> [Account JSON]
"""
import logging
from typing import Any, Dict, List

import requests

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class BackendClientError(Exception):
    pass


class BackendClient:
    """
    Thin ``requests`` wrapper around the backend REST API

    Usage:
        client = BackendClient()
        rows = client.fetch_schedules()
    """

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.BACKEND_API_URL.rstrip("/")
        self.session = session or requests.Session()

    def _get_list(self, path: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, timeout=self.settings.BACKEND_API_TIMEOUT)
        except requests.RequestException as e:
            raise BackendClientError(f"GET {url} failed: {e}") from e

        if resp.status_code != 200:
            raise BackendClientError(f"GET {url} responded with HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendClientError(f"GET {url} returned invalid JSON") from e
        if not isinstance(data, list):
            raise BackendClientError(f"GET {url} returned {type(data).__name__}, expected a list")
        return data

    def fetch_schedules(self) -> List[Dict[str, Any]]:
        return self._get_list("/recurring-schedules")

    def fetch_accounts(self) -> List[Dict[str, Any]]:
        return self._get_list("/accounts")
