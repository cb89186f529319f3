"""Rate-limited HTTP access shared by all Eurostat API handlers."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import requests

from . import __version__

logger = logging.getLogger(__name__)

MIN_REQUEST_INTERVAL = 0.35  # ~3 requests per second
USER_AGENT = f"eustatscore/{__version__}"

Params = Union[Dict[str, str], Sequence[Tuple[str, str]]]


class RateLimiter:
    """
    Enforce a minimum interval between consecutive dispatches.

    This is a leaky bucket of one: there is no burst allowance. The check,
    sleep and timestamp update happen under a lock so concurrent callers are
    spaced correctly and released one at a time.
    """

    def __init__(self, min_interval: float = MIN_REQUEST_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_dispatch: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def last_dispatch(self) -> Optional[float]:
        return self._last_dispatch

    def wait(self) -> float:
        """
        Block until a request may be dispatched and record the dispatch.

        Returns:
            The number of seconds slept (0 if no wait was needed)
        """
        with self._lock:
            delay = 0.0
            if self._last_dispatch is not None:
                elapsed = self._clock() - self._last_dispatch
                if elapsed < self.min_interval:
                    delay = self.min_interval - elapsed
                    logger.debug("Rate limit: sleeping %.3fs before next request", delay)
                    self._sleep(delay)
            self._last_dispatch = self._clock()
            return delay


class RateLimitedFetcher:
    """Issue GET requests through a shared :class:`RateLimiter`."""

    def __init__(self,
                 rate_limiter: Optional[RateLimiter] = None,
                 user_agent: str = USER_AGENT,
                 timeout: Optional[float] = None):
        """
        Args:
            rate_limiter: Limiter shared with other fetchers (a new one if omitted)
            user_agent: Value of the User-Agent header sent with every request
            timeout: Socket timeout passed to requests (None waits indefinitely)
        """
        self.rate_limiter = rate_limiter or RateLimiter()
        self.user_agent = user_agent
        self.timeout = timeout

    def default_headers(self) -> Dict[str, str]:
        return {
            "Accept-Encoding": "gzip, deflate",
            "User-Agent": self.user_agent,
        }

    def get(self, url: str, params: Optional[Params] = None,
            headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """
        Perform a GET request once the rate limiter allows it.

        Transport errors propagate unchanged and the status code is not
        inspected; that is left to the caller.
        """
        merged = self.default_headers()
        if headers:
            merged.update(headers)

        self.rate_limiter.wait()
        logger.debug("GET %s params=%s", url, params)
        return requests.get(url, params=params, headers=merged, timeout=self.timeout)


def build_url(url: str, params: Optional[List[Tuple[str, str]]] = None) -> str:
    """Return the fully encoded URL for ``url`` and ``params`` without sending it."""
    return requests.Request("GET", url, params=params).prepare().url
