"""Split a schedule row's detail text into release events."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from bs4 import Comment, NavigableString, Tag

from ..dates import InvalidDateFormat, parse_date, starts_with_month
from .patterns import (
    COLLECTION_PATTERNS,
    LEAD_TRACK_PATTERNS,
    first_match,
    is_event_line,
)

logger = logging.getLogger(__name__)

MEDIA_HOSTS = ("youtu.be", "youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com")
MEDIA_SCHEMES = ("http", "https")
CHANNEL_MARKERS = ("/@", "/channel/", "/c/", "/user/")


@dataclass
class DetailLine:
    """One <br>-separated line of a detail cell and the links inside it."""

    text: str
    links: List[str] = field(default_factory=list)


@dataclass
class EventGroup:
    """Consecutive detail lines describing one announced release."""

    date_text: Optional[str]
    lines: List[DetailLine]
    start: int

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.lines]

    @property
    def end(self) -> int:
        return self.start + len(self.lines)


def flatten_cell(cell: Tag) -> List[DetailLine]:
    """
    Turn a detail cell into logical lines.

    <br> tags separate lines; adjacent inline nodes are joined with single
    spaces. Empty lines are dropped.
    """
    lines: List[DetailLine] = []
    parts: List[str] = []
    links: List[str] = []

    def flush():
        if parts:
            lines.append(DetailLine(" ".join(parts), list(links)))
        parts.clear()
        links.clear()

    for node in cell.children:
        if isinstance(node, Comment):
            continue
        if isinstance(node, Tag):
            if node.name == "br":
                flush()
                continue
            anchors = [node] if node.name == "a" else node.find_all("a")
            links.extend(a.get("href", "") for a in anchors if a.get("href"))
            text = node.get_text(" ", strip=True)
        elif isinstance(node, NavigableString):
            text = str(node).strip()
        else:
            continue
        if text:
            parts.append(" ".join(text.split()))
    flush()
    return lines


_DATED_LINE_RE = re.compile(
    r"^\s*(?P<date>[A-Za-z]+\s+\d{1,2}(?:,?\s+\d{4})?|\d{1,2}\.\d{1,2}\.(?:\d{4}|\d{2}))"
    r"(?:\s+at\s+\d{1,2}(?::\d{2})?\s*(?:[ap]m)?(?:\s*KST)?)?"
    r"\s*:\s*(?P<rest>.*)$",
    re.IGNORECASE,
)


def _leading_date(text: str, year: Optional[int]) -> Optional[Tuple[str, str]]:
    """
    Split 'March 10 at 6:00 PM KST: Album: X' into ('March 10', 'Album: X').

    Returns None unless the line opens with a date that parses.
    """
    match = _DATED_LINE_RE.match(text)
    if not match:
        return None
    date_text = match.group("date")
    try:
        parse_date(date_text, year)
    except InvalidDateFormat:
        return None
    return date_text, match.group("rest").strip()


def split_events(lines: List[DetailLine], year: Optional[int] = None) -> List[EventGroup]:
    """
    Group a row's lines into events. ``lines[0]`` is the artist name.

    A row whose first content line starts with a month name lists several
    dated sub-events; every '<date>: ...' line opens a new group, with the
    date prefix removed from its first line. Any other row is one event
    dated by the row's date column (``date_text`` is None).
    """
    if len(lines) < 2:
        return []

    content = lines[1:]
    if not starts_with_month(content[0].text):
        return [EventGroup(None, list(content), 1)]

    groups: List[EventGroup] = []
    current: Optional[EventGroup] = None
    for index, line in enumerate(content, start=1):
        dated = _leading_date(line.text, year)
        if dated is not None:
            if current is not None and current.lines:
                groups.append(current)
            date_text, rest = dated
            current = EventGroup(date_text, [DetailLine(rest, line.links)], index)
            continue
        if current is None:
            current = EventGroup(None, [], index)
        current.lines.append(line)
    if current is not None and current.lines:
        groups.append(current)
    return groups


def has_event(texts: List[str]) -> bool:
    return any(is_event_line(text) for text in texts)


def extract_collection_title(texts: List[str]) -> Optional[str]:
    return first_match(texts, COLLECTION_PATTERNS)


def extract_lead_track(texts: List[str]) -> Optional[str]:
    return first_match(texts, LEAD_TRACK_PATTERNS)


def is_media_link(url: str) -> bool:
    """YouTube video links on any of its hosts, over http or https."""
    parts = urlsplit(url)
    return parts.scheme in MEDIA_SCHEMES and (parts.hostname or "") in MEDIA_HOSTS


def is_channel_link(url: str) -> bool:
    path = urlsplit(url).path
    return any(path.startswith(marker) for marker in CHANNEL_MARKERS)


def clean_link(url: str) -> str:
    """Drop tracking parameters; watch URLs keep only their video id."""
    parts = urlsplit(url)
    query = ""
    if parts.path == "/watch":
        video = parse_qs(parts.query).get("v")
        if video:
            query = urlencode({"v": video[0]})
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def extract_media_link(lines: List[DetailLine]) -> Optional[str]:
    """Last per-release YouTube link in the group; channel links never count."""
    found = None
    for line in lines:
        for href in line.links:
            if not is_media_link(href):
                continue
            if is_channel_link(href):
                logger.debug(f"Ignoring channel link {href}")
                continue
            found = href
    if found is None:
        return None
    return clean_link(found)
