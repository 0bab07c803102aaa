"""
Jikan API client implementation.

Provides a retrying GET wrapper that absorbs rate limiting (HTTP 429) and
transient failures, a fixed throttle after each successful request, an
optional in-memory cache (TTL), and one method per catalog endpoint.

Every query resolves to parsed JSON or to an empty ``{"data": []}`` listing;
network and HTTP failures are logged, never raised.
"""
from __future__ import annotations

import copy
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests


logger = logging.getLogger(__name__)

# Characters left unescaped by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class JikanError(RuntimeError):
    """Jikan package error."""


def empty_listing() -> Dict[str, Any]:
    """Return the fallback outcome, shaped like an empty Jikan listing."""
    return {"data": []}


class TopFilter(enum.Enum):
    """Ranking filters accepted by ``/top/anime``."""

    ALL = "all"
    AIRING = "airing"
    UPCOMING = "upcoming"
    BYPOPULARITY = "bypopularity"
    FAVORITE = "favorite"

    @classmethod
    def parse(cls, value: Union["TopFilter", str, None]) -> "TopFilter":
        """Map any input to a filter; anything but an exact value falls back to ALL."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.ALL

    @property
    def query(self) -> str:
        if self is TopFilter.ALL:
            return ""
        return f"?filter={self.value}"


class AttemptKind(enum.Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILURE = "failure"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of a single HTTP attempt."""

    kind: AttemptKind
    payload: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    def describe(self) -> str:
        if self.error:
            return self.error
        return f"HTTP {self.status_code}"


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class RequestGate:
    """Spaces out request starts across every caller sharing one client.

    Each call to :meth:`wait` blocks until at least ``min_interval`` seconds
    have passed since the previous request start, whichever thread made it.
    """

    def __init__(self, min_interval: float = 0.0) -> None:
        self.min_interval = min_interval
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self) -> None:
        if self.min_interval <= 0:
            return
        with self._lock:
            now = time.monotonic()
            delay = self._next_slot - now
            self._next_slot = max(now, self._next_slot) + self.min_interval
        if delay > 0:
            time.sleep(delay)


class JikanClient:
    """Synchronous client for the Jikan v4 API.

    Attributes:
        base_url: Base URL of the API, customizable for testing.
        timeout: Per-request HTTP timeout in seconds.
        max_retries: Default number of attempts per query (at least 1).
        retry_delay: Linear backoff unit; attempt ``i`` waits ``retry_delay * i``
            before it starts, and a failed attempt waits ``retry_delay * (i + 1)``.
        rate_limit_delay: Wait after a 429 response is ``rate_limit_delay * (i + 1)``.
        throttle_delay: Sleep after every successful request.
        cache_ttl: Cache time-to-live in seconds; 0 or None disables caching.
        min_interval: Minimum spacing between request starts shared by all
            threads using this client; 0 disables it.
    """

    DEFAULT_BASE_URL = "https://api.jikan.moe/v4"
    DEFAULT_MAX_RETRIES = 3
    RECENT_PATH = "/anime?order_by=start_date&sort=desc&limit=10&status=airing"
    SEARCH_LIMIT = 20

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = 3.0,
        rate_limit_delay: float = 5.0,
        throttle_delay: float = 2.0,
        cache_ttl: Optional[float] = None,
        min_interval: float = 0.0,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.rate_limit_delay = rate_limit_delay
        self.throttle_delay = throttle_delay
        self.cache_ttl = cache_ttl
        self.gate = RequestGate(min_interval)
        self._cache: Dict[str, _CacheEntry] = {}
        self._cache_lock = threading.Lock()

    # --------------------------------------------------------------------- #
    # Public methods
    # --------------------------------------------------------------------- #
    def get_seasonal_anime(self) -> Dict[str, Any]:
        """Fetch anime airing in the current season."""
        return self.execute("/seasons/now")

    def get_top_anime(self, filter_type: Union[TopFilter, str, None] = TopFilter.ALL) -> Dict[str, Any]:
        """Fetch the top anime ranking, optionally filtered."""
        return self.execute(f"/top/anime{TopFilter.parse(filter_type).query}")

    def get_recent_anime(self) -> Dict[str, Any]:
        """Fetch the ten most recently started airing anime."""
        return self.execute(self.RECENT_PATH)

    def get_anime_details(self, anime_id: Union[int, str]) -> Dict[str, Any]:
        return self.execute(f"/anime/{anime_id}/full")

    def get_anime_characters(self, anime_id: Union[int, str]) -> Dict[str, Any]:
        return self.execute(f"/anime/{anime_id}/characters")

    def search_anime(self, query: str, genre_id: Optional[int] = None) -> Dict[str, Any]:
        """Search anime by title, optionally restricted to one genre."""
        return self.execute(self.search_path(query, genre_id))

    def get_anime_genres(self) -> Dict[str, Any]:
        return self.execute("/genres/anime")

    @classmethod
    def search_path(cls, query: str, genre_id: Optional[int] = None) -> str:
        path = f"/anime?q={quote(query, safe=_URI_COMPONENT_SAFE)}&sfw=true&limit={cls.SEARCH_LIMIT}"
        if genre_id:
            path += f"&genres={genre_id}"
        return path

    def clear_cache(self) -> None:
        """Clear in-memory cache."""
        with self._cache_lock:
            self._cache.clear()

    def execute(self, path: str, max_retries: Optional[int] = None) -> Any:
        """GET ``base_url + path`` and return the decoded JSON body.

        Retries up to ``max_retries`` attempts in total. A 429 response waits
        ``rate_limit_delay * (i + 1)``; any other failure waits
        ``retry_delay * (i + 1)`` and each retry also waits ``retry_delay * i``
        before it starts. When every attempt fails the empty listing is
        returned instead of raising.
        """
        if not path:
            raise ValueError("path must be a non-empty string")
        attempts = self.max_retries if max_retries is None else max_retries
        if attempts < 1:
            raise ValueError("max_retries must be at least 1")

        url = f"{self.base_url}{path}"
        if self.cache_ttl:
            cached = self._read_cache(url)
            if cached is not None:
                return cached

        for attempt in range(attempts):
            if attempt > 0:
                time.sleep(self.retry_delay * attempt)

            result = self._attempt(url)

            if result.kind is AttemptKind.SUCCESS:
                if self.cache_ttl:
                    self._write_cache(url, result.payload)
                time.sleep(self.throttle_delay)
                return result.payload

            if result.kind is AttemptKind.RATE_LIMITED:
                wait = self.rate_limit_delay * (attempt + 1)
                logger.warning("Rate limited on %s, retrying in %.2fs", path, wait)
                time.sleep(wait)
                continue

            logger.warning(
                "Jikan request %s failed (attempt %d/%d): %s",
                path,
                attempt + 1,
                attempts,
                result.describe(),
            )
            if attempt == attempts - 1:
                return self._give_up(path, attempts)
            time.sleep(self.retry_delay * (attempt + 1))

        return self._give_up(path, attempts)

    # --------------------------------------------------------------------- #
    # Internal implementation
    # --------------------------------------------------------------------- #
    def _attempt(self, url: str) -> AttemptResult:
        self.gate.wait()
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            return AttemptResult(AttemptKind.FAILURE, error=f"{type(exc).__name__}: {exc}")

        if response.status_code == 429:
            return AttemptResult(AttemptKind.RATE_LIMITED, status_code=429)
        if not response.ok:
            return AttemptResult(AttemptKind.FAILURE, status_code=response.status_code)
        return self._parse_response(response)

    def _parse_response(self, response: requests.Response) -> AttemptResult:
        try:
            payload = response.json()
        except ValueError as exc:  # requests raises a ValueError subclass
            return AttemptResult(
                AttemptKind.FAILURE,
                status_code=response.status_code,
                error=f"Response is not valid JSON: {exc}",
            )
        return AttemptResult(AttemptKind.SUCCESS, payload=payload, status_code=response.status_code)

    def _give_up(self, path: str, attempts: int) -> Dict[str, Any]:
        logger.error("Giving up on %s after %d attempts, returning empty listing", path, attempts)
        return empty_listing()

    # ------------------------------------------------------------------ #
    # Caching
    # ------------------------------------------------------------------ #
    def _read_cache(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._cache_lock:
            entry = self._cache.get(key)
            if entry and entry.expires_at > now:
                logger.debug("Cache hit for %s", key)
                return copy.deepcopy(entry.value)
            if entry:
                logger.debug("Cache expired for %s", key)
                self._cache.pop(key, None)
        return None

    def _write_cache(self, key: str, value: Any) -> None:
        with self._cache_lock:
            self._cache[key] = _CacheEntry(value=copy.deepcopy(value), expires_at=time.time() + (self.cache_ttl or 0))


# ---------------------------------------------------------------------- #
# Helpers
# ---------------------------------------------------------------------- #
def extract_listing(outcome: Any, *, require_id: bool = True) -> List[Dict[str, Any]]:
    """Return the entries of a listing outcome.

    With ``require_id`` only entries carrying a ``mal_id`` are kept; character
    listings nest their id one level down, so pass ``require_id=False`` there.
    """
    if not isinstance(outcome, dict):
        return []
    content = outcome.get("data")
    if not isinstance(content, list):
        return []
    items = [item for item in content if isinstance(item, dict)]
    if require_id:
        items = [item for item in items if item.get("mal_id") is not None]
    return items


def extract_item(outcome: Any) -> Optional[Dict[str, Any]]:
    """Return the single entry of a details outcome, or None."""
    if not isinstance(outcome, dict):
        return None
    content = outcome.get("data")
    if isinstance(content, dict):
        return content
    return None
