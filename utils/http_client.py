"""HTTP client with retries, rate limiting and short-lived response caching."""
import time
import logging
import threading
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import requests

logger = logging.getLogger("spotalerts.http")


class APIError(Exception):
    """HTTP request error with status code and response body."""
    def __init__(self, message, status_code=None, response_body=None, url=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.url = url


class HTTPClient:
    """Thin requests wrapper shared by the weather provider and push transport.

    GET responses can be cached for cache_ttl seconds so repeated lookups of
    the same coordinates inside one cycle window do not hit the network twice.
    """

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(self, base_url="", rate_limiter=None, timeout=15, max_retries=2,
                 cache_ttl=0, backoff_base=1.0):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.max_retries = max_retries
        self.cache_ttl = cache_ttl
        self.backoff_base = backoff_base
        self._cache = {}
        self._cache_lock = threading.Lock()
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "SpotAlerts/1.0"})

    def _url(self, path):
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

    def get_json(self, path="", params=None):
        """GET and decode a JSON body, retrying transient failures."""
        url = self._url(path)
        key = (url, tuple(sorted((params or {}).items())))
        if self.cache_ttl > 0:
            with self._cache_lock:
                cached = self._cache.get(key)
            if cached and time.monotonic() - cached[1] < self.cache_ttl:
                return cached[0]

        resp = self._request("GET", url, params=params)
        try:
            data = resp.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON from {url}", status_code=resp.status_code,
                           response_body=resp.text, url=url) from e

        if self.cache_ttl > 0:
            self._store(key, data)
        return data

    def post_json(self, url, payload, headers=None):
        """POST a JSON payload, returning the response for any non-retryable status."""
        return self._request("POST", self._url(url), json=payload, headers=headers)

    def _request(self, method, url, **kwargs):
        last_error = None
        for attempt in range(self.max_retries + 1):
            if self.rate_limiter:
                self.rate_limiter.wait()

            try:
                start = time.monotonic()
                resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
                latency = int((time.monotonic() - start) * 1000)
                logger.debug(f"{method} {url} → {resp.status_code} ({latency}ms)")
            except requests.exceptions.RequestException as e:
                logger.warning(f"Request error for {url}: {e} (attempt {attempt + 1})")
                last_error = APIError(f"Request to {url} failed: {e}", url=url)
                self._backoff(attempt)
                continue

            if resp.status_code in self.RETRYABLE_STATUS:
                logger.warning(f"Retryable {resp.status_code} from {url} (attempt {attempt + 1})")
                last_error = APIError(f"HTTP {resp.status_code} from {url}",
                                      status_code=resp.status_code,
                                      response_body=resp.text, url=url)
                self._backoff(attempt, parse_retry_after(resp.headers.get("Retry-After")))
                continue

            if method == "GET" and resp.status_code != 200:
                raise APIError(f"HTTP {resp.status_code} from {url}",
                               status_code=resp.status_code,
                               response_body=resp.text, url=url)
            return resp

        raise last_error or APIError(f"Max retries exceeded for {url}", url=url)

    def _store(self, key, data):
        now = time.monotonic()
        with self._cache_lock:
            expired = [k for k, (_, at) in self._cache.items() if now - at >= self.cache_ttl]
            for k in expired:
                del self._cache[k]
            self._cache[key] = (data, now)

    def _backoff(self, attempt, wait=None):
        if attempt >= self.max_retries:
            return
        time.sleep(wait if wait is not None else min(self.backoff_base * 2 ** attempt, 30))

    def close(self):
        self.session.close()


def parse_retry_after(value):
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date), or None."""
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After: {value!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)
