"""HTTP fetching with pacing, rate-limit backoff, and politeness (User-Agent, timeouts)."""

import random
import sys

import httpx

from pixgrab.config import DEFAULT_DELAY_MS, DEFAULT_TIMEOUT, ScraperConfig
from pixgrab.delay import Backoff, compute_delay, polite_sleep

# Browser-like UA to reduce 403 from sites that block scrapers
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
# Stealth mode picks one per run
STEALTH_USER_AGENTS = (
    DEFAULT_USER_AGENT,
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
)

DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
}

STEALTH_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

RATE_LIMIT_STATUS = 429


class FetchError(Exception):
    """A page or image could not be fetched."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class RateLimitedError(FetchError):
    """Still rate-limited after backing off and retrying once."""


def build_headers(stealth: bool, *, rng: random.Random | None = None) -> dict[str, str]:
    """Request headers: one fixed UA normally; a random realistic UA plus browser headers in stealth mode."""
    if not stealth:
        return dict(DEFAULT_HEADERS)
    ua = (rng or random).choice(STEALTH_USER_AGENTS)
    return {"User-Agent": ua, **STEALTH_HEADERS}


class Fetcher:
    """HTTP fetcher with connection pooling. Reuse for every request of one run."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        delay_ms: int = DEFAULT_DELAY_MS,
        stealth: bool = False,
        randomize: bool = False,
        verbose: bool = False,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._delay_ms = delay_ms
        self._stealth = stealth
        self._randomize = randomize
        self._verbose = verbose
        self._headers = {**build_headers(stealth), **(headers or {})}
        self._transport = transport
        self._client: httpx.Client | None = None
        self.backoff = Backoff(delay_ms)
        # Pages fetched this run; the first one is never delayed
        self.pages_fetched = 0

    @classmethod
    def from_config(cls, config: ScraperConfig, *, transport: httpx.BaseTransport | None = None) -> "Fetcher":
        return cls(
            timeout=config.timeout,
            delay_ms=config.delay_ms,
            stealth=config.stealth,
            randomize=config.randomize_delays,
            verbose=config.verbose,
            transport=transport,
        )

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            # httpx decodes gzip/deflate transparently
            self._client = httpx.Client(
                follow_redirects=True,
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _log(self, message: str) -> None:
        if self._verbose:
            print(f"* {message}", file=sys.stderr)

    def _get(self, url: str) -> httpx.Response:
        try:
            return self._get_client().get(url)
        except httpx.RequestError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

    def reset(self) -> None:
        """Start a new run: first page undelayed, backoff at baseline."""
        self.pages_fetched = 0
        self.backoff.reset()

    def fetch_page(self, url: str) -> str:
        """
        GET a page and return its decoded text. In stealth mode every page after the
        first waits the pacing delay. A 429 backs off (base delay x multiplier) and
        retries exactly once; any other failure propagates as FetchError immediately.
        """
        if self._stealth and self.pages_fetched > 0:
            wait = compute_delay(self._delay_ms, self._randomize)
            self._log(f"Waiting {wait}ms before next request...")
            polite_sleep(wait)
        self.pages_fetched += 1

        resp = self._get(url)
        if resp.status_code == RATE_LIMIT_STATUS:
            wait = self.backoff.record_rate_limit()
            print(f"[WARN] Rate limited (429). Backing off for {wait}ms...", file=sys.stderr)
            polite_sleep(wait)
            resp = self._get(url)
            if resp.status_code == RATE_LIMIT_STATUS:
                self.backoff.record_rate_limit()
                print("[WARN] Rate limiting detected. Consider using longer delays.", file=sys.stderr)
                raise RateLimitedError(url, "429 Too Many Requests", RATE_LIMIT_STATUS)
        if resp.is_error:
            raise FetchError(url, f"HTTP {resp.status_code}", resp.status_code)

        self.backoff.reset()
        return resp.text

    def fetch_bytes(self, url: str) -> bytes:
        """Plain GET for an image body; no retry."""
        resp = self._get(url)
        if resp.is_error:
            raise FetchError(url, f"HTTP {resp.status_code}", resp.status_code)
        return resp.content
