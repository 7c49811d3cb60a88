"""Unit tests for detail-cell flattening, event splitting and field patterns."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from release_schedule.scrapers.extractor import (
    DetailLine,
    clean_link,
    extract_collection_title,
    extract_lead_track,
    extract_media_link,
    flatten_cell,
    has_event,
    is_channel_link,
    is_media_link,
    split_events,
)
from release_schedule.scrapers.patterns import is_event_line, quoted_text

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cell(inner_html: str):
    soup = BeautifulSoup(f'<table><tr><td class="has-text-align-left">{inner_html}</td></tr></table>', "lxml")
    return soup.select_one("td")


def _lines(*texts: str) -> list:
    return [DetailLine(text) for text in texts]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestFlattenCell:
    def test_br_separates_lines(self) -> None:
        cell = _cell("<strong>aespa</strong><br>Album: Armageddon<br>Title Track: 'Supernova'")
        texts = [line.text for line in flatten_cell(cell)]
        assert texts == ["aespa", "Album: Armageddon", "Title Track: 'Supernova'"]

    def test_inline_nodes_are_joined_with_single_spaces(self) -> None:
        cell = _cell("Title Track:   <em>'Whiplash'</em>\n  MV<br>")
        assert [line.text for line in flatten_cell(cell)] == ["Title Track: 'Whiplash' MV"]

    def test_empty_lines_are_dropped(self) -> None:
        cell = _cell("IVE<br><br>   <br>Album: Switch")
        assert [line.text for line in flatten_cell(cell)] == ["IVE", "Album: Switch"]

    def test_links_stay_with_their_line(self) -> None:
        cell = _cell(
            'Album: A<br><a href="https://youtu.be/one">MV</a><br>'
            'Album: B <span><a href="https://youtu.be/two">teaser</a></span>'
        )
        lines = flatten_cell(cell)
        assert lines[0].links == []
        assert lines[1].links == ["https://youtu.be/one"]
        assert lines[2].links == ["https://youtu.be/two"]

    def test_html_comments_are_skipped(self) -> None:
        cell = _cell("Album: X<!-- hidden note -->")
        assert [line.text for line in flatten_cell(cell)] == ["Album: X"]


class TestSplitEvents:
    def test_single_line_row_has_no_events(self) -> None:
        assert split_events(_lines("aespa")) == []

    def test_undated_row_is_one_group(self) -> None:
        groups = split_events(_lines("aespa", "Album: Armageddon", "Title Track: 'Supernova'"))
        assert len(groups) == 1
        assert groups[0].date_text is None
        assert groups[0].start == 1
        assert groups[0].texts == ["Album: Armageddon", "Title Track: 'Supernova'"]

    def test_dated_lines_open_new_groups(self) -> None:
        groups = split_events(
            _lines(
                "aespa",
                "March 10: Title Track: 'Whiplash'",
                "Teaser photos",
                "March 20: Album: Armageddon",
            ),
            2024,
        )
        assert [g.date_text for g in groups] == ["March 10", "March 20"]
        assert groups[0].texts == ["Title Track: 'Whiplash'", "Teaser photos"]
        assert groups[1].texts == ["Album: Armageddon"]
        assert groups[1].start == 3
        assert groups[0].end == 3

    def test_dated_line_keeps_its_links(self) -> None:
        lines = [DetailLine("aespa"), DetailLine("March 10: MV release", ["https://youtu.be/x"])]
        groups = split_events(lines, 2024)
        assert groups[0].lines[0].links == ["https://youtu.be/x"]

    def test_dated_line_with_time_splits_after_time(self) -> None:
        groups = split_events(_lines("aespa", "March 10 at 6:00 PM KST: Album: Armageddon"), 2024)
        assert groups[0].date_text == "March 10"
        assert groups[0].texts == ["Album: Armageddon"]

    def test_dated_line_with_year_and_short_time(self) -> None:
        groups = split_events(_lines("aespa", "March 10, 2024 at 6 PM: Title Track: 'Whiplash'"), 2024)
        assert groups[0].date_text == "March 10, 2024"
        assert groups[0].texts == ["Title Track: 'Whiplash'"]

    def test_colon_inside_text_is_not_a_date_prefix(self) -> None:
        groups = split_events(_lines("aespa", "March 10: Album: X", "Showcase at 8:00 PM"), 2024)
        assert len(groups) == 1
        assert groups[0].texts == ["Album: X", "Showcase at 8:00 PM"]


class TestEventMarkers:
    @pytest.mark.parametrize(
        "line",
        [
            "Album: Armageddon",
            "OST: Queen of Tears",
            "Title Track: Whiplash",
            "Pre-release single",
            "3rd Mini Album: Drama",
            "'Supernova' MV Release",
            "Release of the MV",
        ],
    )
    def test_event_lines(self, line: str) -> None:
        assert is_event_line(line)

    @pytest.mark.parametrize(
        "line",
        ["Concept photos", "Release date announced", "MV teaser", "Comeback showcase"],
    )
    def test_non_event_lines(self, line: str) -> None:
        assert not is_event_line(line)

    def test_keywordless_group_has_no_event(self) -> None:
        assert not has_event(["Concept photos", "Tracklist", "Highlight medley"])


class TestFieldExtraction:
    def test_album_prefix(self) -> None:
        assert extract_collection_title(["Teaser", "Album: Armageddon"]) == "Armageddon"

    def test_ost_prefix(self) -> None:
        assert extract_collection_title(["OST: Queen of Tears"]) == "Queen of Tears"

    def test_mini_album(self) -> None:
        assert extract_collection_title(["4th Mini Album: Drama"]) == "Drama"

    def test_no_collection(self) -> None:
        assert extract_collection_title(["Title Track: 'Whiplash'"]) is None

    def test_title_track_single_quotes(self) -> None:
        assert extract_lead_track(["Title Track: 'Whiplash'"]) == "Whiplash"

    def test_curly_quotes_are_normalized(self) -> None:
        assert extract_lead_track(["Title Track: ‘Whiplash’ MV"]) == "Whiplash"

    def test_double_quotes_preferred_over_single(self) -> None:
        assert extract_lead_track(['Title Track: "Don\'t Stop"']) == "Don't Stop"

    def test_unquoted_title_track_drops_filler(self) -> None:
        assert extract_lead_track(["Title Track: Whiplash MV Release"]) == "Whiplash"

    def test_release_line_needs_quotes(self) -> None:
        assert extract_lead_track(['"Supernova" MV Release']) == "Supernova"
        assert extract_lead_track(["Supernova MV Release"]) is None

    def test_quoted_text_outermost_span(self) -> None:
        assert quoted_text('say "a "b" c"') == 'a "b" c'


class TestMediaLinks:
    def test_channel_link_only_gives_no_media_link(self) -> None:
        lines = [DetailLine("Album: X", ["https://youtube.com/@SomeChannel"])]
        assert extract_media_link(lines) is None

    @pytest.mark.parametrize(
        "url",
        [
            "https://youtube.com/@SomeChannel",
            "https://www.youtube.com/channel/UC123",
            "https://www.youtube.com/c/SMTOWN",
            "https://www.youtube.com/user/smtown",
        ],
    )
    def test_channel_links_detected(self, url: str) -> None:
        assert is_channel_link(url)

    def test_last_valid_link_wins(self) -> None:
        lines = [
            DetailLine("Teaser", ["https://youtu.be/teaser"]),
            DetailLine("MV", ["https://youtu.be/final?si=track", "https://youtube.com/@aespa"]),
        ]
        assert extract_media_link(lines) == "https://youtu.be/final"

    def test_non_youtube_links_ignored(self) -> None:
        lines = [DetailLine("Album: X", ["https://open.spotify.com/album/1"])]
        assert extract_media_link(lines) is None

    def test_clean_watch_link_keeps_video_id(self) -> None:
        url = "https://www.youtube.com/watch?v=abc123&list=PL1&si=xyz"
        assert clean_link(url) == "https://www.youtube.com/watch?v=abc123"

    def test_clean_short_link_drops_query(self) -> None:
        assert clean_link("https://youtu.be/abc123?si=xyz") == "https://youtu.be/abc123"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=abc123",
            "https://m.youtube.com/watch?v=abc123",
            "https://music.youtube.com/watch?v=abc123",
            "https://youtube.com/shorts/abc123",
            "http://youtu.be/abc123",
            "https://WWW.YouTube.com:443/watch?v=abc123",
        ],
    )
    def test_youtube_hosts_are_media_links(self, url: str) -> None:
        assert is_media_link(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://youtube.com.example.net/watch?v=abc123",
            "https://vimeo.com/123",
            "ftp://youtu.be/abc123",
            "/watch?v=abc123",
        ],
    )
    def test_other_hosts_are_not_media_links(self, url: str) -> None:
        assert not is_media_link(url)

    def test_www_watch_link_is_extracted_and_cleaned(self) -> None:
        lines = [DetailLine("MV", ["https://www.youtube.com/watch?v=abc123&si=x"])]
        assert extract_media_link(lines) == "https://www.youtube.com/watch?v=abc123"

    def test_mobile_link_is_extracted(self) -> None:
        lines = [DetailLine("MV", ["https://m.youtube.com/watch?v=abc123"])]
        assert extract_media_link(lines) == "https://m.youtube.com/watch?v=abc123"
