"""Display formatting for release records."""

import html as html_lib
from typing import Iterable, List

from ..dates import format_date, format_time
from ..models import ReleaseEvent


def format_release(event: ReleaseEvent, html: bool = True) -> str:
    """
    One display line for a release.

    HTML form: ``DD.MM.YY | <b>Artist</b> | Album | <a href="mv">Track</a>``.
    Without a track title the link text is "Link"; the local time is appended
    when known.
    """
    escape = html_lib.escape if html else (lambda text: text)

    artist = escape(event.entity_name)
    parts = [format_date(event.date), f"<b>{artist}</b>" if html else artist]
    if event.collection_title:
        parts.append(escape(event.collection_title))

    track = escape(event.lead_track_title) if event.lead_track_title else ""
    if event.media_link:
        if html:
            href = html_lib.escape(event.media_link, quote=True)
            parts.append(f'<a href="{href}">{track or "Link"}</a>')
        else:
            parts.append(f"{track} ({event.media_link})" if track else event.media_link)
    elif track:
        parts.append(track)

    if event.time_of_day is not None:
        parts.append(format_time(event.time_of_day))
    return " | ".join(parts)


def format_releases(events: Iterable[ReleaseEvent], html: bool = True) -> List[str]:
    return [format_release(event, html=html) for event in events]
