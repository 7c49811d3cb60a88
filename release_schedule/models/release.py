"""Data model for release events."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Tuple

from ..dates import TIME_FORMAT, format_date, parse_date


@dataclass(frozen=True)
class ReleaseEvent:
    """One announced release of a tracked artist."""

    entity_name: str
    date: date
    time_of_day: Optional[time] = None
    collection_title: Optional[str] = None
    lead_track_title: Optional[str] = None
    media_link: Optional[str] = None

    @property
    def key(self) -> Tuple[str, date]:
        return (self.entity_name.lower(), self.date)

    @property
    def has_lead_track(self) -> bool:
        return bool(self.lead_track_title)

    @property
    def has_media_link(self) -> bool:
        return bool(self.media_link)

    def to_dict(self) -> dict:
        return {
            "artist": self.entity_name,
            "release_date": format_date(self.date),
            "time_local": self.time_of_day.strftime(TIME_FORMAT) if self.time_of_day else None,
            "album_name": self.collection_title,
            "title_track": self.lead_track_title,
            "mv": self.media_link,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReleaseEvent":
        time_text = data.get("time_local")
        return cls(
            entity_name=data["artist"],
            date=parse_date(data["release_date"]),
            time_of_day=datetime.strptime(time_text, TIME_FORMAT).time() if time_text else None,
            collection_title=data.get("album_name"),
            lead_track_title=data.get("title_track"),
            media_link=data.get("mv"),
        )
