"""Journal API adapter - HTTP client for the remote journal store."""

import asyncio
import logging
from typing import Any

import requests

from bujo.config import Config, load_config
from bujo.ports.journal_gateway import NetworkFailure

logger = logging.getLogger(__name__)


class HttpJournalGateway:
    """
    HTTP journal store adapter.

    Implements JournalGateway protocol. Blocking requests calls run in
    worker threads so several can be in flight on one event loop. No
    business logic and no retries - failures are logged and raised.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self.base_url = self.config.api_base_url.rstrip("/") + "/"
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path.lstrip('/')}"

    def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        """Make a JSON request and unwrap the data envelope."""
        timeout = self.config.request_timeout or None
        try:
            resp = self._session.request(method, self._url(path), json=body, timeout=timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkFailure(method, path, str(e)) from e
        except ValueError as e:
            logger.warning(f"{method} {path} returned invalid JSON: {e}")
            raise NetworkFailure(method, path, f"invalid JSON: {e}") from e

        logger.debug(f"{method} {path} -> {resp.status_code}")
        if isinstance(payload, dict):
            return payload.get("data")
        return payload

    async def get(self, path: str) -> Any:
        return await asyncio.to_thread(self._request, "GET", path)

    async def post(self, path: str, body: dict) -> Any:
        return await asyncio.to_thread(self._request, "POST", path, body)

    async def delete(self, path: str, body: dict) -> Any:
        return await asyncio.to_thread(self._request, "DELETE", path, body)
