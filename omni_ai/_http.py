"""requests transport for the agent runtime: Bearer auth, typed errors and backoff retry."""

import logging
import time
from typing import Any

import requests

from .exceptions import STATUS_MAP, APIError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_BASE = 0.5  # seconds, doubled per attempt
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


def _error_details(resp: requests.Response) -> tuple[str, str | None]:
    """Pull (message, request_id) out of an error response body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}", None
    if not isinstance(body, dict):
        return resp.text or f"HTTP {resp.status_code}", None

    # The runtime answers {"error": "..."}, {"error": {"message": ...}} or {"detail": "..."}
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message") or body.get("detail")
        request_id = error.get("request_id") or body.get("request_id")
    else:
        message = error or body.get("detail")
        request_id = body.get("request_id")
    return str(message or f"HTTP {resp.status_code}"), request_id


def _raise_for_status(resp: requests.Response, *, method: str, url: str) -> None:
    message, request_id = _error_details(resp)
    resp.close()
    exc_cls = STATUS_MAP.get(resp.status_code, APIError)
    raise exc_cls(
        message, status_code=resp.status_code, request_id=request_id, method=method, path=url
    )


def _retry_delay(resp: requests.Response | None, attempt: int) -> float:
    """Seconds to wait before the next attempt; honours Retry-After on 429."""
    fallback = BACKOFF_BASE * (2**attempt)
    if resp is None or resp.status_code != 429:
        return fallback
    retry_after = resp.headers.get("Retry-After")
    if not retry_after:
        return fallback
    try:
        return float(retry_after)
    except ValueError:
        logger.debug("Ignoring unparseable Retry-After header: %s", retry_after)
        return fallback


class HTTPClient:
    """Pooled session bound to one agent runtime base URL."""

    def __init__(self, api_key: str, base_url: str, timeout: int = 300):
        self._session = requests.Session()
        self._session.headers.update(
            {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        )
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _send(self, method: str, path: str, *, stream: bool, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}{path}"
        for attempt in range(MAX_ATTEMPTS):
            last_attempt = attempt == MAX_ATTEMPTS - 1
            try:
                resp = self._session.request(
                    method, url, timeout=self._timeout, stream=stream, **kwargs
                )
            except (requests.Timeout, requests.ConnectionError) as e:
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s", method, url, attempt + 1, MAX_ATTEMPTS, e
                )
                if last_attempt:
                    raise APIError(str(e), method=method, path=url) from e
                time.sleep(_retry_delay(None, attempt))
                continue

            if resp.ok:
                return resp
            if last_attempt or resp.status_code not in RETRY_STATUSES:
                _raise_for_status(resp, method=method, url=url)

            delay = _retry_delay(resp, attempt)
            logger.debug(
                "HTTP %d from %s %s, retrying in %.1fs", resp.status_code, method, url, delay
            )
            resp.close()
            time.sleep(delay)

        raise APIError("Max retries exceeded", method=method, path=url)

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request; error statuses raise the mapped OmniError subclass."""
        return self._send(method, path, stream=False, **kwargs)

    def stream(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Like ``request`` but leaves the body unread for SSE consumption."""
        return self._send(method, path, stream=True, **kwargs)

    def close(self) -> None:
        self._session.close()
