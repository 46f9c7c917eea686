"""
HTTP utilities for brewpress.
"""
import asyncio
import time
import logging
from collections import defaultdict
from typing import Optional
from urllib.parse import urlparse

import aiohttp
import async_timeout

from brewpress.core.errors import NetworkError

# Configure logging
logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30  # seconds
MIN_INTERVAL = 1.0  # seconds between requests to the same domain

USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
)


class RateLimiter:
    """
    Per-domain request spacing with adaptive backoff for failing domains.
    """
    def __init__(self, min_interval: float = MIN_INTERVAL, max_backoff: float = 60.0,
                 failure_threshold: int = 3):
        self.min_interval = min_interval
        self.max_backoff = max_backoff
        self.failure_threshold = failure_threshold
        self.last_requests = defaultdict(lambda: 0.0)
        self.locks = defaultdict(asyncio.Lock)
        self.failure_counts = defaultdict(int)
        self.backoff_times = defaultdict(lambda: min_interval)

    async def acquire(self, domain: str):
        """
        Wait until the next request to a domain is allowed.

        Args:
            domain: The domain to rate limit
        """
        async with self.locks[domain]:
            time_passed = time.monotonic() - self.last_requests[domain]
            wait_time = max(self.min_interval, self.backoff_times[domain]) - time_passed

            if wait_time > 0:
                logger.debug(f"Rate limiting {domain}, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

            self.last_requests[domain] = time.monotonic()

    def report_success(self, domain: str):
        """
        Report a successful request; gradually relaxes the domain's backoff.

        Args:
            domain: The domain that had a successful request
        """
        self.failure_counts[domain] = 0
        if self.backoff_times[domain] > self.min_interval:
            self.backoff_times[domain] = max(self.min_interval, self.backoff_times[domain] * 0.8)

    def report_failure(self, domain: str):
        """
        Report a failed request; doubles the backoff once failures pile up.

        Args:
            domain: The domain that had a failed request
        """
        self.failure_counts[domain] += 1

        if self.failure_counts[domain] >= self.failure_threshold:
            self.backoff_times[domain] = min(self.max_backoff, max(self.backoff_times[domain], 0.5) * 2.0)
            logger.warning(
                f"Increased backoff for {domain} to {self.backoff_times[domain]:.2f}s "
                f"after {self.failure_counts[domain]} failures"
            )


class ImageDownloader:
    """
    Downloads source images with a bounded timeout.
    """
    def __init__(self, timeout: float = DOWNLOAD_TIMEOUT, rate_limiter: Optional[RateLimiter] = None):
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()
        self._session = None
        self.headers = {
            'User-Agent': USER_AGENT,
            'Accept': 'image/avif,image/webp,image/apng,image/*,*/*;q=0.8',
        }

    @property
    def session(self) -> aiohttp.ClientSession:
        """
        Lazy initialization of aiohttp session.

        Returns:
            aiohttp.ClientSession: The HTTP session
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def close_session(self):
        """Close aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> bytes:
        """
        Download an image.

        Args:
            url: Absolute image URL

        Returns:
            Raw image bytes

        Raises:
            NetworkError: On timeouts, HTTP errors or empty bodies
        """
        domain = urlparse(url).netloc
        await self.rate_limiter.acquire(domain)

        try:
            async with async_timeout.timeout(self.timeout):
                async with self.session.get(url) as response:
                    response.raise_for_status()
                    data = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.rate_limiter.report_failure(domain)
            raise NetworkError(f"Error downloading {url}: {e}") from e

        if not data:
            self.rate_limiter.report_failure(domain)
            raise NetworkError(f"Empty response downloading {url}")

        self.rate_limiter.report_success(domain)
        return data
