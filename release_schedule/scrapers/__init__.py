from .base import BaseScraper, FetchFailed, ParseTimeout, ScraperError, StructureChangedError
from .page_parser import PageParser
from .schedule_scraper import ScheduleScraper

__all__ = [
    "BaseScraper",
    "FetchFailed",
    "PageParser",
    "ParseTimeout",
    "ScheduleScraper",
    "ScraperError",
    "StructureChangedError",
]
