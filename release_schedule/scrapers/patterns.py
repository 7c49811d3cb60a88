"""
Line patterns for release detail text.

Each pattern looks at one detail line and either recognises a field in it or
returns None. Extractors walk an ordered list of patterns, so a new markup
quirk is handled by adding a pattern here rather than another branch in the
extraction code.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

COLLECTION = "collection_title"
LEAD_TRACK = "lead_track_title"

FILLER_TOKENS = {"mv", "release"}

_QUOTE_TRANSLATION = str.maketrans({
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
})


@dataclass(frozen=True)
class FieldMatch:
    field: str
    value: str


def normalize_quotes(text: str) -> str:
    return text.translate(_QUOTE_TRANSLATION)


def strip_filler(text: str) -> str:
    """Drop 'MV' / 'release' tokens left around a track name."""
    return " ".join(
        part for part in text.split() if part.lower() not in FILLER_TOKENS
    )


def quoted_text(text: str) -> Optional[str]:
    """Outermost double-quoted span, else outermost single-quoted span."""
    for quote in ('"', "'"):
        start = text.find(quote)
        end = text.rfind(quote)
        if start != -1 and start < end:
            return text[start + 1:end]
    return None


class LinePattern:
    """Recognises one field in a single detail line."""

    field: str = ""

    def match(self, line: str) -> Optional[FieldMatch]:
        raise NotImplementedError


class PrefixPattern(LinePattern):
    """'Album: Armageddon' -> Armageddon."""

    def __init__(self, field: str, prefix: str):
        self.field = field
        self.prefix = prefix

    def match(self, line: str) -> Optional[FieldMatch]:
        stripped = line.strip()
        if not stripped.lower().startswith(self.prefix):
            return None
        value = stripped[len(self.prefix):].strip()
        if not value:
            return None
        return FieldMatch(self.field, value)


class MiniAlbumPattern(LinePattern):
    """'3rd Mini Album: Drama' -> Drama."""

    field = COLLECTION

    def match(self, line: str) -> Optional[FieldMatch]:
        if "mini album" not in line.lower():
            return None
        _, sep, rest = line.partition(":")
        value = rest.strip()
        if not sep or not value:
            return None
        return FieldMatch(self.field, value)


class TitleTrackPattern(LinePattern):
    """"Title Track: 'Whiplash'" -> Whiplash; unquoted text is accepted."""

    field = LEAD_TRACK
    prefix = "title track:"

    def match(self, line: str) -> Optional[FieldMatch]:
        stripped = normalize_quotes(line.strip())
        if not stripped.lower().startswith(self.prefix):
            return None
        rest = stripped[len(self.prefix):].strip()
        quoted = quoted_text(rest)
        value = strip_filler(quoted if quoted is not None else rest)
        if not value:
            return None
        return FieldMatch(self.field, value)


class QuotedReleasePattern(LinePattern):
    """'"Supernova" MV Release' -> Supernova; quotes are required."""

    field = LEAD_TRACK

    def match(self, line: str) -> Optional[FieldMatch]:
        stripped = normalize_quotes(line.strip())
        if "release" not in stripped.lower():
            return None
        quoted = quoted_text(stripped)
        if quoted is None:
            return None
        value = strip_filler(quoted)
        if not value:
            return None
        return FieldMatch(self.field, value)


COLLECTION_PATTERNS: List[LinePattern] = [
    PrefixPattern(COLLECTION, "album:"),
    PrefixPattern(COLLECTION, "ost:"),
    MiniAlbumPattern(),
]

LEAD_TRACK_PATTERNS: List[LinePattern] = [
    TitleTrackPattern(),
    QuotedReleasePattern(),
]


def first_match(lines: Iterable[str], patterns: List[LinePattern]) -> Optional[str]:
    """Value of the first line any pattern recognises, scanning line by line."""
    for line in lines:
        for pattern in patterns:
            found = pattern.match(line)
            if found is not None:
                return found.value
    return None


_PREFIX_MARKERS = ("album:", "ost:", "title track:")
_MV_RELEASE_RE = re.compile(r"\bmv\b.*\brelease\b|\brelease\b.*\bmv\b")


def is_event_line(line: str) -> bool:
    """True if the line announces an actual release, not a teaser."""
    lowered = line.strip().lower()
    if lowered.startswith(_PREFIX_MARKERS):
        return True
    if "pre-release" in lowered or "mini album" in lowered:
        return True
    return bool(_MV_RELEASE_RE.search(lowered))
