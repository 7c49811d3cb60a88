from .deduplication import Deduplicator
from .whitelist import (
    EmptyWhitelist,
    EnvWhitelistProvider,
    StaticWhitelistProvider,
    WhitelistFilter,
    WhitelistProvider,
    fingerprint,
)

__all__ = [
    "Deduplicator",
    "EmptyWhitelist",
    "EnvWhitelistProvider",
    "StaticWhitelistProvider",
    "WhitelistFilter",
    "WhitelistProvider",
    "fingerprint",
]
