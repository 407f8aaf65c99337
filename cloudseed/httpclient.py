"""A small HTTP client with retries, used by the network datasources."""

from __future__ import annotations

import http.client
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from typing import Optional


class HttpError(Exception):
    """A request failed; ``status`` holds the HTTP status when there was one."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(HttpError):
    """The requested resource does not exist."""


class HttpTimeoutError(HttpError):
    """The server did not answer in time."""


class HttpClient:
    """Fetches URLs, optionally retrying transient failures with backoff."""

    def __init__(
        self,
        headers: Optional[Mapping[str, str]] = None,
        *,
        timeout: float = 10.0,
        max_retries: int = 15,
        initial_backoff: float = 0.1,
        max_backoff: float = 5.0,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep

    def get(self, url: str) -> bytes:
        """Fetch ``url`` once and return the response body."""
        request = urllib.request.Request(url, headers=self.headers, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            exc.close()
            if exc.code == 404:
                raise NotFoundError(f"not found: {url!r}", status=404) from exc
            raise HttpError(
                f"unexpected status {exc.code} from {url!r}", status=exc.code
            ) from exc
        except TimeoutError as exc:
            raise HttpTimeoutError(f"timed out fetching {url!r}") from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise HttpTimeoutError(f"timed out fetching {url!r}") from exc
            raise HttpError(f"unable to fetch {url!r}: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise HttpError(f"unable to fetch {url!r}: {exc}") from exc

    def get_retry(self, url: str) -> bytes:
        """Fetch ``url``, retrying timeouts, connection and server errors."""
        delay = min(self.initial_backoff, self.max_backoff)
        for attempt in range(1, self.max_retries + 1):
            try:
                return self.get(url)
            except HttpError as exc:
                if not self._should_retry(exc) or attempt == self.max_retries:
                    raise
            self._sleep(delay)
            delay = min(delay * 2, self.max_backoff)
        raise AssertionError("unreachable")

    @staticmethod
    def _should_retry(error: HttpError) -> bool:
        if isinstance(error, NotFoundError):
            return False
        return error.status is None or error.status >= 500