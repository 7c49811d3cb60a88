"""Whitelists of tracked artists and filtering of records against them."""

import hashlib
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set

from ..models import ReleaseEvent

logger = logging.getLogger(__name__)

FINGERPRINT_BYTES = 8


class EmptyWhitelist(ValueError):
    """A query was made with no tracked artists."""

    def __init__(self, message: str = "whitelist is empty, add artists first"):
        super().__init__(message)


def normalize_members(members: Iterable[str]) -> Set[str]:
    """Lower-case, trimmed, non-empty names."""
    return {m.strip().lower() for m in members if m and m.strip()}


def fingerprint(members: Iterable[str]) -> str:
    """
    Stable hash of a member set.

    Membership decides the value, not order, case or provenance: two
    whitelists with the same artists share cache entries.
    """
    joined = ",".join(sorted(normalize_members(members)))
    digest = hashlib.sha256(joined.encode("utf-8")).digest()
    return digest[:FINGERPRINT_BYTES].hex()


class WhitelistProvider(ABC):
    """Read-only view of the tracked artists."""

    @abstractmethod
    def united_members(self) -> Set[str]:
        """Every tracked artist, lower-cased."""

    @abstractmethod
    def members_for(self, group: str) -> Set[str]:
        """Artists of one named group (e.g. 'female'), lower-cased."""


class StaticWhitelistProvider(WhitelistProvider):
    """Whitelist held in memory, keyed by group name."""

    def __init__(self, groups: Optional[Dict[str, Iterable[str]]] = None):
        self._groups = {
            name.lower(): normalize_members(members)
            for name, members in (groups or {}).items()
        }

    def united_members(self) -> Set[str]:
        united: Set[str] = set()
        for members in self._groups.values():
            united |= members
        return united

    def members_for(self, group: str) -> Set[str]:
        return set(self._groups.get(group.lower(), set()))


class EnvWhitelistProvider(StaticWhitelistProvider):
    """Comma-separated FEMALE_WHITELIST / MALE_WHITELIST variables."""

    GROUP_VARIABLES = {
        "female": "FEMALE_WHITELIST",
        "male": "MALE_WHITELIST",
    }

    def __init__(self):
        groups = {}
        for group, variable in self.GROUP_VARIABLES.items():
            groups[group] = os.getenv(variable, "").split(",")
        super().__init__(groups)
        logger.info(
            "Loaded whitelist: "
            + ", ".join(f"{g}={len(self.members_for(g))}" for g in self.GROUP_VARIABLES)
        )


class WhitelistFilter:
    """Filter records down to a (possibly narrower) whitelist."""

    def __init__(self, members: Iterable[str]):
        self.members = normalize_members(members)
        if not self.members:
            raise EmptyWhitelist()

    def allows(self, artist: str) -> bool:
        return artist.strip().lower() in self.members

    def filter(self, records: Iterable[ReleaseEvent]) -> List[ReleaseEvent]:
        filtered = []
        for record in records:
            if self.allows(record.entity_name):
                filtered.append(record)
            else:
                logger.debug(f"Filtered out: {record.entity_name} ({record.date})")
        return filtered
