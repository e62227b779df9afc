"""
boxport/transport.py - Resilient HTTP transport for all catalog calls.

Every request made by the catalog client goes through a requests Session whose
adapter carries a urllib3 Retry policy:

- retry while fewer than ``max_retries`` retries have been made AND the attempt
  either failed without a response or returned 408/500/502/503/504;
- sleep ``step_delay * 2**n`` plus up to the same amount of jitter before the
  n-th retry, capped at ``max_timeout``;
- ``max_timeout`` is also the total budget of one logical request, retries and
  backoff sleeps included, and the socket timeout of each attempt. A caller
  deadline, when set, shortens both.

Exhausted status retries hand back the last response so the caller can raise
with the status it saw; exhausted transport errors surface as requests errors.
"""
from __future__ import annotations

import logging
import random
import time
from itertools import takewhile
from typing import Optional
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import MaxRetryError
from urllib3.util.retry import Retry

from boxport.config import ClientConfig, RetryConfig, RETRY_STATUS_CODES
from boxport.logger import DeadlineExceeded

logger = logging.getLogger(__name__)


class LoggingRetry(Retry):
    """urllib3 Retry with exponential jittered backoff, a log line per retry and
    an optional absolute deadline (time.monotonic()) past which it gives up."""

    def __init__(self, *args, deadline: Optional[float] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.deadline = deadline

    def new(self, **kw):
        new_retry = super().new(**kw)
        new_retry.deadline = self.deadline
        return new_retry

    def with_deadline(self, deadline: Optional[float]) -> "LoggingRetry":
        retry = self.new()
        retry.deadline = deadline
        return retry

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def get_backoff_time(self) -> float:
        consecutive_errors = len(
            list(takewhile(lambda x: x.redirect_location is None, reversed(self.history)))
        )
        if consecutive_errors <= 0:
            return 0.0
        base = self.backoff_factor * (2 ** (consecutive_errors - 1))
        # Jitter stays below the base so the next step is never shorter.
        delay = base + random.random() * base
        delay = min(self.backoff_max, delay)
        remaining = self.remaining()
        if remaining is not None:
            delay = min(delay, remaining)
        return float(max(0.0, delay))

    def increment(
        self,
        method=None,
        url=None,
        response=None,
        error=None,
        _pool=None,
        _stacktrace=None,
    ):
        path = urlsplit(url).path if url else ""
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            logger.warning(f"[transport] {method} {path} out of time after "
                           f"{len(self.history)} retries, giving up")
            raise MaxRetryError(_pool, url, error)

        new_retry = super().increment(
            method=method,
            url=url,
            response=response,
            error=error,
            _pool=_pool,
            _stacktrace=_stacktrace,
        )
        attempt = len(new_retry.history)
        if response is None or error is not None:
            logger.warning(f"[transport] {method} {path} failed ({error}) - retry #{attempt}")
        else:
            status = f"{response.status} {response.reason or ''}".strip()
            logger.warning(f"[transport] {method} {path} returned {status!r} - retry #{attempt}")
        return new_retry


class DeadlineAdapter(HTTPAdapter):
    """HTTPAdapter that gives every request its own retry budget.

    The budget starts when send() is called and ends after ``max_timeout``
    seconds or at the caller deadline, whichever comes first. The adapter
    serves one request at a time.
    """

    def __init__(self, retry: LoggingRetry, max_timeout: float, deadline: Optional[float] = None):
        super().__init__(max_retries=retry)
        self.max_timeout = max_timeout
        self.deadline = deadline

    def request_deadline(self, now: Optional[float] = None) -> float:
        deadline = (time.monotonic() if now is None else now) + self.max_timeout
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return deadline

    def send(self, request, **kwargs):
        policy = self.max_retries
        self.max_retries = policy.with_deadline(self.request_deadline())
        try:
            return super().send(request, **kwargs)
        finally:
            self.max_retries = policy


def build_retry(retry: RetryConfig) -> LoggingRetry:
    return LoggingRetry(
        total=retry.max_retries,
        connect=None,
        read=None,
        status=None,
        other=None,
        allowed_methods=None,  # POST/PUT/DELETE are retried as well
        status_forcelist=sorted(RETRY_STATUS_CODES),
        backoff_factor=retry.step_delay,
        backoff_max=retry.max_timeout,
        raise_on_status=False,
        respect_retry_after_header=False,
    )


def build_session(config: ClientConfig) -> requests.Session:
    """Create the single session used by a client; not reconfigured afterwards."""
    session = requests.Session()
    adapter = DeadlineAdapter(
        build_retry(config.retry),
        max_timeout=config.retry.max_timeout,
        deadline=config.deadline,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"Accept": "application/json"})
    if config.token:
        session.headers["Authorization"] = f"Bearer {config.token}"
    if config.headers:
        session.headers.update(config.headers)
    return session


def request_timeout(config: ClientConfig, now: Optional[float] = None) -> float:
    """Socket timeout of each attempt: max_timeout, shortened by the caller deadline."""
    timeout = config.retry.max_timeout
    if config.deadline is None:
        return timeout
    remaining = config.deadline - (time.monotonic() if now is None else now)
    if remaining <= 0:
        raise DeadlineExceeded("deadline exceeded before request was sent")
    return min(timeout, remaining)
