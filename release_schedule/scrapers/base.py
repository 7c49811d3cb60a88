"""Base scraper class with common functionality."""

import logging
import random
import threading
from abc import ABC
from typing import List, Optional

import requests
from bs4 import BeautifulSoup
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_exponential,
)

from ..config import USER_AGENT, Settings
from ..deadline import Deadline


class ScraperError(Exception):
    """Base exception for scraper errors."""

    pass


class StructureChangedError(ScraperError):
    """Raised when expected HTML structure is not found."""

    pass


class FetchFailed(ScraperError):
    """A request still failed after every retry."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        message = f"failed to fetch {url}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ParseTimeout(FetchFailed):
    """A page ran past its deadline; handled exactly like FetchFailed."""

    def __init__(self, url: str):
        super().__init__(url)
        self.args = (f"deadline exceeded for {url}",)


class BaseScraper(ABC):
    """
    Shared HTTP plumbing: one session, a politeness delay before every
    request, a global cap on in-flight requests, and retry with backoff.
    """

    SOURCE_NAME: str = ""
    BASE_URL: str = ""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self.logger = logging.getLogger(self.__class__.__name__)
        self._slots = threading.BoundedSemaphore(settings.max_concurrent_requests)

    def _politeness_delay(self) -> float:
        """Random pause before each request, independent of retry backoff."""
        return random.uniform(0, self.settings.request_delay)

    def _request(self, url: str, deadline: Deadline) -> requests.Response:
        """Issue a single GET under the concurrency cap."""
        if deadline.sleep(self._politeness_delay()):
            raise ParseTimeout(url)

        acquired = self._slots.acquire(timeout=deadline.remaining())
        if not acquired:
            raise ParseTimeout(url)
        try:
            if deadline.cancelled:
                raise ParseTimeout(url)
            timeout = self.settings.request_timeout
            remaining = deadline.remaining()
            if remaining is not None:
                timeout = max(0.1, min(timeout, remaining))
            self.logger.debug(f"Fetching: {url}")
            response = self.session.get(url, timeout=timeout)
            response.raise_for_status()
            return response
        finally:
            self._slots.release()

    def _log_retry(self, retry_state: RetryCallState):
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        self.logger.warning(
            f"Attempt {retry_state.attempt_number}/{self.settings.max_retries} "
            f"failed, retrying in {delay:.1f}s: {error}"
        )

    def _fetch_with_retry(self, url: str, deadline: Deadline) -> requests.Response:
        """
        Fetch ``url`` with exponential backoff.

        Raises:
            FetchFailed: after the last attempt fails.
            ParseTimeout: if the deadline is cancelled or expires first.
        """
        retryer = Retrying(
            stop=stop_any(
                stop_after_attempt(self.settings.max_retries),
                lambda _state: deadline.cancelled,
            ),
            wait=wait_exponential(
                multiplier=self.settings.retry_initial_delay,
                exp_base=self.settings.retry_backoff_multiplier,
                max=self.settings.retry_max_delay,
            ),
            retry=retry_if_exception_type(requests.RequestException),
            sleep=deadline.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retryer(self._request, url, deadline)
        except requests.RequestException as e:
            if deadline.cancelled:
                raise ParseTimeout(url) from e
            self.logger.error(f"Failed to fetch {url}: {e}")
            raise FetchFailed(url, e) from e

    def _fetch_page(self, url: str, deadline: Deadline) -> BeautifulSoup:
        """Fetch and parse a page."""
        response = self._fetch_with_retry(url, deadline)
        return BeautifulSoup(response.text, "lxml")

    def _validate_results(self, results: List) -> bool:
        """Warn when a page that should list items returned none."""
        if not results:
            self.logger.warning(
                f"{self.SOURCE_NAME}: No results found - site structure may have changed"
            )
            return False
        return True
