"""Command-line entry point: refresh and print the release schedule."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, Settings
from .dates import InvalidDateFormat
from .filters import EmptyWhitelist, EnvWhitelistProvider, WhitelistFilter
from .models import ReleaseEvent, TimeBucket
from .output import FileReleaseSink, format_releases
from .scrapers import ScheduleScraper
from .state import ReleaseCache
from .updater import Updater

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-schedule",
        description="Fetch the comeback schedule for tracked artists.",
    )
    parser.add_argument(
        "--months",
        nargs="+",
        metavar="MONTH",
        help='months to show, e.g. "march" or "march-2025" (default: current month)',
    )
    parser.add_argument("--year", type=int, help="year for months given without one")
    parser.add_argument("--output-dir", type=Path, help="where release files are written")
    parser.add_argument(
        "--group",
        help="only show artists of one whitelist group (female or male)",
    )
    parser.add_argument(
        "--plain", action="store_true", help="print plain text instead of HTML"
    )
    return parser


def load_saved(sink: FileReleaseSink, buckets: List[TimeBucket], whitelist) -> List[ReleaseEvent]:
    """Records from the last saved files of months that could not be refreshed."""
    allowed = WhitelistFilter(whitelist)
    records = []
    for bucket in buckets:
        saved = allowed.filter(sink.load(bucket))
        if saved:
            logger.warning(f"Serving {len(saved)} saved records for {bucket.key}")
            records.extend(saved)
    return records


def main(argv: Optional[List[str]] = None) -> int:
    """Main orchestration function."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 2
    configure_logging(settings.log_level)

    year = args.year or settings.schedule_year
    try:
        if args.months:
            buckets = [TimeBucket.parse(label, year) for label in args.months]
        else:
            buckets = [TimeBucket.parse(TimeBucket.current_month_name(), year)]
    except InvalidDateFormat as e:
        logger.error(f"Invalid month: {e}")
        return 2

    logger.info("=" * 60)
    logger.info("Starting Release Schedule")
    logger.info("=" * 60)

    whitelist_provider = EnvWhitelistProvider()
    whitelist = (
        whitelist_provider.members_for(args.group)
        if args.group
        else whitelist_provider.united_members()
    )

    cache = ReleaseCache(settings, whitelist_provider)
    sink = FileReleaseSink(args.output_dir or settings.output_dir)
    updater = Updater(settings, ScheduleScraper(settings), cache, whitelist_provider, sink)
    cache.set_updater(updater)

    try:
        # ========================================
        # Phase 1: Refresh months without fresh data
        # ========================================
        logger.info("")
        logger.info("Phase 1: Refreshing schedule...")
        logger.info("-" * 40)

        _, missing = cache.query(buckets, whitelist)
        if missing:
            report = updater.refresh(missing)
            for bucket, reason in report.failed.items():
                logger.warning(f"No fresh data for {bucket}: {reason}")
        else:
            logger.info("All months served from cache")

        # ========================================
        # Phase 2: Print releases
        # ========================================
        logger.info("")
        logger.info("Phase 2: Collecting releases...")
        logger.info("-" * 40)

        records, missing = cache.query(buckets, whitelist)
        if missing:
            saved = load_saved(sink, missing, whitelist)
            records = sorted(records + saved, key=lambda r: (r.date, r.entity_name.lower()))
        for line in format_releases(records, html=not args.plain):
            print(line)

        logger.info("")
        logger.info("=" * 60)
        logger.info("COMPLETE!")
        logger.info("=" * 60)
        logger.info(f"Releases: {len(records)}")
        if missing:
            logger.info(f"Months without data: {[b.key for b in missing]}")
        logger.info("=" * 60)
    except EmptyWhitelist as e:
        logger.error(f"{e} (set FEMALE_WHITELIST / MALE_WHITELIST)")
        return 1
    finally:
        cache.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
