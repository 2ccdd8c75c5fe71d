"""
Shared HTTP client for the external APIs (HubSpot, ClickUp).

Retries transient failures (429/5xx/network) with exponential backoff and
maps everything else onto the pipeline error taxonomy so callers can
decide what is fatal.
"""

import logging
from typing import Any, Dict, Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import RateLimitOrTransientError, error_for_status

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin JSON client bound to one base URL and header set."""

    def __init__(self, base_url: str, headers: Dict[str, str], timeout: float = 30,
                 max_retries: int = 3, backoff_min: float = 4, backoff_max: float = 60,
                 name: str = 'API'):
        self.base_url = base_url.rstrip('/')
        self.headers = headers
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.name = name

    def request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None,
                data: Optional[Any] = None) -> Dict[str, Any]:
        """Call the API, retrying transient failures. Returns parsed JSON ({} for empty bodies)."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=self.backoff_min, max=self.backoff_max),
            retry=retry_if_exception_type(RateLimitOrTransientError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._send(method, endpoint, params, data)
        return {}

    def _send(self, method: str, endpoint: str, params: Optional[Dict[str, Any]],
              data: Optional[Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                params=params,
                json=data,
                timeout=self.timeout,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.warning(f"⚠️ {self.name} {method} {endpoint} network error: {e}")
            raise RateLimitOrTransientError(f"{self.name} network error: {e}") from e

        if response.status_code >= 400:
            body = response.text[:800] if response.text else ''
            message = _error_message(response) or body or response.reason
            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(f"⚠️ {self.name} {method} {endpoint} → {response.status_code} (will retry) body={body}")
            else:
                logger.error(f"{self.name} call failed: {method} {endpoint} (status={response.status_code}, body={body})")
            raise error_for_status(response.status_code, f"{self.name} {response.status_code}: {message}")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.warning(f"⚠️ {self.name} {method} {endpoint} returned non-JSON body")
            return {}

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Optional[Any] = None) -> Dict[str, Any]:
        return self.request('POST', endpoint, data=data)

    def put(self, endpoint: str, data: Optional[Any] = None) -> Dict[str, Any]:
        return self.request('PUT', endpoint, data=data)


def _error_message(response) -> Optional[str]:
    """HubSpot uses `message`, ClickUp uses `err`."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get('message') or payload.get('err')
    return None
