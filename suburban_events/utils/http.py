"""Async HTTP client with a global concurrency cap and optional caching."""

import asyncio
import ipaddress
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "suburban-events-web/1.0 (+local)"
DEFAULT_TIMEOUT = 20.0
DEFAULT_CONCURRENCY = 5


class FetchError(Exception):
    """Raised when a source cannot be retrieved (timeout, DNS, non-2xx)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class SSRFError(ValueError):
    """Raised when a URL targets a private/reserved network address."""


def validate_url(url: str) -> str:
    """Validate a URL is safe to fetch.

    Rejects:
    - Non-HTTP(S) schemes
    - Private/reserved IP literals (127.0.0.0/8, 10.0.0.0/8, 172.16.0.0/12,
      192.168.0.0/16, 169.254.0.0/16, ::1, etc.)
    - Localhost hostnames

    Args:
        url: The URL to validate.

    Returns:
        The validated URL string.

    Raises:
        SSRFError: If the URL targets a disallowed destination.
    """
    if not url or not isinstance(url, str):
        raise SSRFError("Empty or invalid URL")

    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise SSRFError(f"Blocked non-HTTP scheme: {parsed.scheme!r}")

    hostname = parsed.hostname
    if not hostname:
        raise SSRFError(f"No hostname in URL: {url}")

    lowered = hostname.lower()
    if lowered in ("localhost", "localhost.localdomain") or lowered.endswith(".localhost"):
        raise SSRFError(f"Blocked localhost URL: {url}")

    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        addr = None

    if addr is not None:
        if addr.is_private or addr.is_reserved or addr.is_loopback:
            raise SSRFError(f"Blocked private/reserved IP: {hostname}")
        if addr.is_link_local:
            raise SSRFError(f"Blocked link-local IP: {hostname}")

    return url


@dataclass
class FetchResult:
    """
    Structured result from a fetch operation.

    Contains the response body on success and the failure reason otherwise;
    ``fetch`` never raises, so callers branch on ``success``.
    """

    url: str
    status_code: int
    text: str | None
    content: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: float = 0.0
    error: str | None = None
    from_cache: bool = False

    @property
    def success(self) -> bool:
        """Check if the fetch was successful."""
        return 200 <= self.status_code < 300 and self.error is None


class ResponseCache:
    """
    In-memory response cache keyed by URL with a time-to-live.

    Create one per process and pass it to :class:`AsyncHTTPClient`; nothing
    is written to disk.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        """
        Initialize response cache.

        Args:
            ttl_seconds: Entry lifetime in seconds
            clock: Monotonic time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, FetchResult]] = {}

    def get(self, url: str) -> FetchResult | None:
        """Return the cached result for ``url`` if present and fresh."""
        entry = self._entries.get(url)
        if entry is None:
            return None

        cached_at, result = entry
        if self._clock() - cached_at > self.ttl_seconds:
            logger.debug(f"Cache expired for {url}")
            del self._entries[url]
            return None

        logger.debug(f"Cache hit for {url}")
        return FetchResult(
            url=result.url,
            status_code=result.status_code,
            text=result.text,
            content=result.content,
            headers=result.headers,
            elapsed_ms=result.elapsed_ms,
            from_cache=True,
        )

    def set(self, result: FetchResult) -> None:
        """Cache a fetch result. Failures are never cached."""
        if not result.success:
            return
        self._entries[result.url] = (self._clock(), result)

    def cached_at(self, url: str) -> float | None:
        """Clock reading at which ``url`` was cached, if it is."""
        entry = self._entries.get(url)
        return entry[0] if entry else None

    def clear(self) -> None:
        """Drop all cached responses."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class AsyncHTTPClient:
    """
    Async HTTP client shared by all sources of one aggregation run.

    Features:
    - One semaphore caps in-flight requests across every source; waiters
      are admitted in FIFO order as slots free up
    - Per-request timeout
    - Identifying User-Agent
    - Optional TTL response cache
    - No retries: a failed source is simply empty for this run

    Use as an async context manager so the connection pool is closed.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        concurrency: int = DEFAULT_CONCURRENCY,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        verify_ssl: bool = True,
    ):
        """
        Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            concurrency: Maximum number of requests in flight at once
            cache: Optional response cache
            transport: Custom httpx transport (tests use httpx.MockTransport)
            verify_ssl: Whether to verify SSL certificates
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.timeout = timeout
        self.user_agent = user_agent
        self.concurrency = concurrency
        self.verify_ssl = verify_ssl
        self.cache = cache
        self._semaphore = asyncio.Semaphore(concurrency)
        self._in_flight = 0
        self.max_in_flight = 0

        client_kwargs = {
            "timeout": timeout,
            "headers": {"User-Agent": user_agent},
            "follow_redirects": True,
            "verify": verify_ssl,
        }
        if transport is not None:
            client_kwargs["transport"] = transport

        self._client = httpx.AsyncClient(**client_kwargs)

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a URL under the concurrency cap.

        Args:
            url: URL to fetch

        Returns:
            FetchResult with response data or error information
        """
        try:
            validate_url(url)
        except SSRFError as e:
            logger.warning(f"URL validation failed: {e}")
            return FetchResult(url=url, status_code=0, text=None, error=str(e))

        if self.cache is not None:
            cached = self.cache.get(url)
            if cached:
                return cached

        async with self._semaphore:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
            start_time = time.monotonic()
            try:
                logger.debug(f"GET {url}")
                response = await self._client.get(url)
            except httpx.TimeoutException as e:
                return self._failure(url, start_time, f"Timeout: {e}")
            except httpx.RequestError as e:
                return self._failure(url, start_time, f"Request error: {e}")
            finally:
                self._in_flight -= 1

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if not response.is_success:
            logger.warning(f"HTTP {response.status_code} for {url}")
            return FetchResult(
                url=url,
                status_code=response.status_code,
                text=None,
                headers=dict(response.headers),
                elapsed_ms=elapsed_ms,
                error=f"HTTP {response.status_code}",
            )

        result = FetchResult(
            url=url,
            status_code=response.status_code,
            text=response.text,
            content=response.content,
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
        )
        if self.cache is not None:
            self.cache.set(result)
        return result

    def _failure(self, url: str, start_time: float, reason: str) -> FetchResult:
        logger.warning(f"{reason} for {url}")
        return FetchResult(
            url=url,
            status_code=0,
            text=None,
            elapsed_ms=(time.monotonic() - start_time) * 1000,
            error=reason,
        )

    async def get_text(self, url: str) -> str:
        """
        Fetch URL and return the response body.

        Raises:
            FetchError: If the request failed for any reason
        """
        return (await self._fetch_or_raise(url)).text or ""

    async def get_bytes(self, url: str) -> bytes:
        """
        Fetch URL and return the undecoded response body.

        For formats that declare their own encoding, such as XML feeds.

        Raises:
            FetchError: If the request failed for any reason
        """
        result = await self._fetch_or_raise(url)
        if result.content is not None:
            return result.content
        return (result.text or "").encode("utf-8")

    async def _fetch_or_raise(self, url: str) -> FetchResult:
        result = await self.fetch(url)
        if not result.success:
            raise FetchError(url, result.error or f"HTTP {result.status_code}")
        return result

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
