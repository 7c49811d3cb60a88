"""Unit tests for the HTTP layer: retries, deadlines and link discovery."""

from __future__ import annotations

import threading
import time
from datetime import date

import pytest
import requests

from release_schedule.config import LISTING_URL
from release_schedule.deadline import Deadline
from release_schedule.scrapers import base
from release_schedule.scrapers import (
    FetchFailed,
    ParseTimeout,
    ScheduleScraper,
    StructureChangedError,
)

MARCH_URL = "https://kpopofficial.com/kpop-comeback-schedule-march-2024/"
APRIL_URL = "https://kpopofficial.com/kpop-comeback-schedule-april-2024/"


class TestRetry:
    def test_gives_up_after_max_retries(self, settings, make_session) -> None:
        session = make_session({}, failing=(MARCH_URL,))
        scraper = ScheduleScraper(settings, session=session)

        with pytest.raises(FetchFailed) as excinfo:
            scraper._fetch_page(MARCH_URL, Deadline())

        assert session.get.call_count == 3
        assert excinfo.value.url == MARCH_URL
        assert isinstance(excinfo.value.cause, requests.ConnectionError)
        assert not isinstance(excinfo.value, ParseTimeout)

    def test_http_errors_are_retried(self, settings, make_session) -> None:
        session = make_session({})
        scraper = ScheduleScraper(settings, session=session)

        with pytest.raises(FetchFailed):
            scraper._fetch_page(MARCH_URL, Deadline())
        assert session.get.call_count == 3

    def test_succeeds_after_a_failed_attempt(self, settings, make_session) -> None:
        session = make_session({MARCH_URL: "<html><body><p>ok</p></body></html>"})
        good = session.get.side_effect
        attempts = []

        def flaky(url, timeout=None):
            attempts.append(url)
            if len(attempts) == 1:
                raise requests.Timeout("slow")
            return good(url, timeout=timeout)

        session.get.side_effect = flaky
        scraper = ScheduleScraper(settings, session=session)

        soup = scraper._fetch_page(MARCH_URL, Deadline())
        assert soup.select_one("p").get_text() == "ok"
        assert len(attempts) == 2

    def test_cancelled_deadline_raises_parse_timeout(self, settings, make_session) -> None:
        session = make_session({MARCH_URL: "<html></html>"})
        scraper = ScheduleScraper(settings, session=session)
        deadline = Deadline()
        deadline.cancel()

        with pytest.raises(ParseTimeout):
            scraper._fetch_page(MARCH_URL, deadline)
        session.get.assert_not_called()

    def test_parse_timeout_is_a_fetch_failure(self) -> None:
        assert issubclass(ParseTimeout, FetchFailed)

    def test_user_agent_is_set(self, settings, make_session) -> None:
        session = make_session({})
        ScheduleScraper(settings, session=session)
        assert "Mozilla" in session.headers["User-Agent"]


class TestRequestPolicy:
    def test_in_flight_requests_are_capped(self, settings, make_session) -> None:
        urls = [f"https://kpopofficial.com/page-{n}/" for n in range(5)]
        session = make_session({url: "<html></html>" for url in urls})
        good = session.get.side_effect
        lock = threading.Lock()
        gate = threading.Event()
        full = threading.Event()
        counts = {"inside": 0, "peak": 0}

        def slow(url, timeout=None):
            with lock:
                counts["inside"] += 1
                counts["peak"] = max(counts["peak"], counts["inside"])
                if counts["inside"] >= settings.max_concurrent_requests:
                    full.set()
            gate.wait(5)
            with lock:
                counts["inside"] -= 1
            return good(url, timeout=timeout)

        session.get.side_effect = slow
        scraper = ScheduleScraper(settings, session=session)
        threads = [
            threading.Thread(target=scraper._fetch_page, args=(url, Deadline())) for url in urls
        ]
        for thread in threads:
            thread.start()

        assert full.wait(5)
        time.sleep(0.2)
        assert counts["peak"] == settings.max_concurrent_requests
        gate.set()
        for thread in threads:
            thread.join(5)

        assert session.get.call_count == 5
        assert counts["peak"] == 2

    def test_politeness_delay_precedes_each_request(self, settings, make_session, monkeypatch) -> None:
        settings.request_delay = 1.5
        events = []
        uniform_args = []

        def fake_uniform(low, high):
            uniform_args.append((low, high))
            return 0.25

        def fake_sleep(self, seconds):
            events.append(("sleep", seconds))
            return False

        monkeypatch.setattr(base.random, "uniform", fake_uniform)
        monkeypatch.setattr(Deadline, "sleep", fake_sleep)
        session = make_session({MARCH_URL: "<html></html>"})
        good = session.get.side_effect

        def recording_get(url, timeout=None):
            events.append(("get", url))
            return good(url, timeout=timeout)

        session.get.side_effect = recording_get
        ScheduleScraper(settings, session=session)._fetch_page(MARCH_URL, Deadline())

        assert uniform_args == [(0, 1.5)]
        assert events == [("sleep", 0.25), ("get", MARCH_URL)]

    def test_backoff_grows_and_is_capped(self, settings, make_session, monkeypatch) -> None:
        settings.max_retries = 4
        settings.retry_initial_delay = 1.0
        settings.retry_backoff_multiplier = 2.0
        settings.retry_max_delay = 3.0
        sleeps = []

        def fake_sleep(self, seconds):
            sleeps.append(seconds)
            return False

        monkeypatch.setattr(base.random, "uniform", lambda low, high: 0.0)
        monkeypatch.setattr(Deadline, "sleep", fake_sleep)
        session = make_session({}, failing=(MARCH_URL,))

        with pytest.raises(FetchFailed):
            ScheduleScraper(settings, session=session)._fetch_page(MARCH_URL, Deadline())

        assert session.get.call_count == 4
        assert [s for s in sleeps if s] == [1.0, 2.0, 3.0]


class TestLinkList:
    def test_filters_by_month_year_and_host(self, settings, make_session, listing_html, march) -> None:
        scraper = ScheduleScraper(settings, session=make_session({LISTING_URL: listing_html}))
        assert scraper.fetch_link_list([march], Deadline()) == [MARCH_URL]

    def test_several_buckets_in_page_order(self, settings, make_session, listing_html, march, april) -> None:
        scraper = ScheduleScraper(settings, session=make_session({LISTING_URL: listing_html}))
        assert scraper.fetch_link_list([april, march], Deadline()) == [MARCH_URL, APRIL_URL]

    def test_no_schedule_links_means_layout_changed(self, settings, make_session, march) -> None:
        page = '<html><body><a href="https://kpopofficial.com/about/">About</a></body></html>'
        scraper = ScheduleScraper(settings, session=make_session({LISTING_URL: page}))
        with pytest.raises(StructureChangedError):
            scraper.fetch_link_list([march], Deadline())

    def test_listing_failure(self, settings, make_session, march) -> None:
        scraper = ScheduleScraper(settings, session=make_session({}, failing=(LISTING_URL,)))
        with pytest.raises(FetchFailed):
            scraper.fetch_link_list([march], Deadline())


class TestFetchAndParse:
    def test_parses_page(self, settings, make_session, make_row, march) -> None:
        html = "<table>" + make_row("aespa", ["Album: Armageddon"]) + "</table>"
        scraper = ScheduleScraper(settings, session=make_session({MARCH_URL: html}))

        records = scraper.fetch_and_parse(MARCH_URL, march, {"aespa"}, Deadline())
        assert [(r.entity_name, r.date) for r in records] == [("aespa", date(2024, 3, 10))]
