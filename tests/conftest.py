"""Shared pytest fixtures for the release_schedule test suite."""

from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional
from unittest.mock import MagicMock

import pytest
import requests
from bs4 import BeautifulSoup

from release_schedule.config import Settings
from release_schedule.filters.whitelist import StaticWhitelistProvider
from release_schedule.models import ReleaseEvent, TimeBucket

# ---------------------------------------------------------------------------
# Settings and collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings with every delay removed so retries run instantly."""
    return Settings(
        max_concurrent_requests=2,
        max_retries=3,
        retry_initial_delay=0.0,
        retry_max_delay=0.0,
        request_delay=0.0,
        request_timeout=5.0,
        refresh_debounce_delay=60.0,
        refresh_timeout=30.0,
        bucket_timeout=10.0,
        schedule_year=2024,
    )


@pytest.fixture
def whitelist_provider() -> StaticWhitelistProvider:
    return StaticWhitelistProvider({"female": ["aespa", "IVE"], "male": ["Seventeen"]})


@pytest.fixture
def march() -> TimeBucket:
    return TimeBucket.parse("march-2024")


@pytest.fixture
def april() -> TimeBucket:
    return TimeBucket.parse("april-2024")


@pytest.fixture
def make_event() -> Callable[..., ReleaseEvent]:
    def _make(
        artist: str = "aespa",
        day: date = date(2024, 3, 10),
        **fields,
    ) -> ReleaseEvent:
        return ReleaseEvent(entity_name=artist, date=day, **fields)

    return _make


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_row() -> Callable[..., str]:
    """Build one schedule table row the way the site marks it up."""

    def _make(
        artist: str,
        details: List[str],
        date_text: str = "March 10, 2024",
        time_text: Optional[str] = "at 6 PM KST",
    ) -> str:
        time_html = f"<br>{time_text}" if time_text else ""
        detail_html = "<br>".join(details)
        return (
            "<tr>"
            f'<td class="has-text-align-right"><mark>{date_text}</mark>{time_html}</td>'
            f'<td class="has-text-align-left"><strong><mark>{artist}</mark></strong>'
            f"<br>{detail_html}</td>"
            "</tr>"
        )

    return _make


@pytest.fixture
def make_page() -> Callable[[List[str]], BeautifulSoup]:
    def _make(rows: List[str]) -> BeautifulSoup:
        html = "<html><body><table><tbody>" + "".join(rows) + "</tbody></table></body></html>"
        return BeautifulSoup(html, "lxml")

    return _make


@pytest.fixture
def listing_html() -> str:
    return """
    <html><body>
      <a href="https://kpopofficial.com/kpop-comeback-schedule-march-2024/">March 2024</a>
      <a href="https://kpopofficial.com/kpop-comeback-schedule-april-2024/">April 2024</a>
      <a href="https://kpopofficial.com/kpop-comeback-schedule-march-2024/">March again</a>
      <a href="https://kpopofficial.com/kpop-comeback-schedule-march-2023/">Last year</a>
      <a href="https://mirror.example.com/kpop-comeback-schedule-march-2024/">Mirror</a>
      <a href="https://kpopofficial.com/about/">About</a>
    </body></html>
    """


# ---------------------------------------------------------------------------
# HTTP mocks
# ---------------------------------------------------------------------------


def _response(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def make_session() -> Callable[..., MagicMock]:
    """
    A mocked requests.Session.

    ``pages`` maps URLs to HTML; URLs listed in ``failing`` raise a
    ConnectionError on every attempt.
    """

    def _make(pages: dict, failing: tuple = ()) -> MagicMock:
        session = MagicMock(spec=requests.Session)
        session.headers = {}

        def _get(url, timeout=None):
            if url in failing:
                raise requests.ConnectionError(f"connection refused: {url}")
            if url not in pages:
                error = requests.HTTPError(f"404 for {url}")
                response = MagicMock()
                response.raise_for_status.side_effect = error
                return response
            return _response(pages[url])

        session.get.side_effect = _get
        return session

    return _make
