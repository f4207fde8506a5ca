"""
Rate-aware HTTP fetching for the forum source.

The source throttles anonymous clients with HTTP 429 and sometimes
answers 403 while a client is cooling down. :class:`Fetcher` retries
those two statuses with exponential backoff, retries transport errors
(timeouts, refused connections) after a short fixed pause, and gives up
with ``None`` once the attempt bound is reached. Any other HTTP error is
final on the first attempt.
"""

# Import time for the waits between attempts
import time

# Import urllib for HTTP requests
import urllib.request

# Import urllib errors for specific exception handling
from urllib.error import URLError, HTTPError

from ..console import log

# Identify ourselves; the source rejects empty user agents
USER_AGENT = "Mozilla/5.0 admitflow/1.0 (admissions research)"

# HTTP timeout in seconds
TIMEOUT = 30

# Attempts per request before giving up
MAX_ATTEMPTS = 3

# Statuses the source uses for rate limiting
THROTTLE_STATUSES = (403, 429)


def backoff_delay(attempt, base_delay):
    """Return the wait after the ``attempt``-th throttled response.

    ``attempt`` is 1-based, so a base delay of one second gives 2s, 4s, 8s...

    :param attempt: Number of the attempt that was throttled (1-based).
    :type attempt: int
    :param base_delay: Base delay in seconds.
    :type base_delay: float
    :returns: Seconds to wait before the next attempt.
    :rtype: float
    """
    return (2 ** attempt) * base_delay


class Fetcher:
    """GET-only HTTP client with throttling-aware retries.

    :param base_delay: Base of the exponential backoff, in seconds.
    :type base_delay: float
    :param max_attempts: Upper bound on attempts per URL.
    :type max_attempts: int
    :param transport_delay: Fixed pause after a transport-level error.
    :type transport_delay: float
    :param timeout: Socket timeout per attempt, in seconds.
    :type timeout: float
    :param sleep: Optional replacement for :func:`time.sleep`.
    :type sleep: callable or None
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_attempts: int = MAX_ATTEMPTS,
        transport_delay: float = 2.0,
        timeout: float = TIMEOUT,
        sleep=None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.base_delay = float(base_delay)
        self.max_attempts = int(max_attempts)
        self.transport_delay = float(transport_delay)
        self.timeout = timeout
        self.sleep = sleep

    def _wait(self, seconds):
        # Resolved at call time so tests can patch time.sleep
        (self.sleep or time.sleep)(seconds)

    def _open(self, url):
        request = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            return response.read().decode("utf-8", errors="replace")

    def fetch(self, url):
        """Fetch ``url`` and return the decoded body, or ``None`` on failure.

        No wait follows the final attempt: with three attempts and a base
        delay of one second a persistently throttled URL costs 2s + 4s.

        :param url: Absolute URL to GET.
        :type url: str
        :returns: Response body as text, or ``None``.
        :rtype: str or None
        """
        for attempt in range(1, self.max_attempts + 1):
            is_last = attempt == self.max_attempts
            try:
                return self._open(url)
            except HTTPError as e:
                if e.code not in THROTTLE_STATUSES:
                    log("WARN", f"HTTP {e.code} for {url}; not retrying")
                    return None
                if is_last:
                    break
                wait = backoff_delay(attempt, self.base_delay)
                log("WARN", f"Throttled ({e.code}); waiting {wait:g}s "
                            f"({attempt}/{self.max_attempts})")
                self._wait(wait)
            except (URLError, TimeoutError, ConnectionError) as e:
                log("WARN", f"Request failed for {url}: {e}")
                if not is_last:
                    self._wait(self.transport_delay)

        log("WARN", f"Giving up on {url} after {self.max_attempts} attempts")
        return None
