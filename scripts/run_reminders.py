#!/usr/bin/env python3
"""Poll for due event reminders at a fixed interval.

Usage:
    python scripts/run_reminders.py            # run forever
    python scripts/run_reminders.py --once     # single scan (e.g. from cron)
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to Python path
sys.path.append(str(Path(__file__).parent.parent))

from teamcal.config.environment import IS_PRODUCTION_ENVIRONMENT  # noqa: E402
from teamcal.config.calendar import get_calendar_config  # noqa: E402
from teamcal.services import ReminderScanner  # noqa: E402
from teamcal.utils.logging_config import setup_logging  # noqa: E402

setup_logging()
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Send due event reminders.")
    parser.add_argument('--once', action='store_true', help="Run a single scan and exit")
    parser.add_argument('--interval', type=int, default=None,
                        help="Seconds between scans (default: REMINDER_INTERVAL_SECONDS)")
    return parser.parse_args(argv)


def main(argv=None):
    """Run reminder scans until interrupted."""
    args = parse_args(argv)
    config = get_calendar_config()
    interval = args.interval or config.reminder_interval_seconds
    scanner = ReminderScanner(config=config)

    logger.info(f"Starting reminder scanner ({'production' if IS_PRODUCTION_ENVIRONMENT else 'development'}), "
                f"interval {interval}s")

    while True:
        started = time.monotonic()
        try:
            scanner.run_tick()
        except Exception as e:
            # A failed tick is retried on the next interval
            logger.error(f"Reminder tick failed: {e}")
            if args.once:
                raise

        if args.once:
            return

        elapsed = time.monotonic() - started
        time.sleep(max(0.0, interval - elapsed))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Reminder scanner stopped")
