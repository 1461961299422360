"""
Watch a build directory from the terminal and ask before activating new builds.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.config import get_settings
from backend.updates import UpdateWatcher
from backend.versioning import BuildMonitor, BuildTracker

logger = logging.getLogger(__name__)


def confirm(message: str) -> bool:
    answer = input(f"{message} [y/N] ")
    return answer.strip().lower() in ("y", "yes", "e", "evet")


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Terminal build update watcher")
    parser.add_argument(
        "--dist-dir",
        type=str,
        default=settings.dist_dir,
        help="Build directory to watch",
    )
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=settings.update_check_interval_seconds or 60.0,
        help="Seconds between checks",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    tracker = BuildTracker(
        args.dist_dir,
        settings.include_assets,
        cleanup_outdated_caches=settings.cleanup_outdated_caches,
    )
    watcher = UpdateWatcher(
        activate=tracker.activate,
        prompt=confirm,
        message=settings.update_prompt_message,
    )
    tracker.subscribe(watcher.on_need_refresh)
    monitor = BuildMonitor(tracker, args.interval_seconds)

    while True:
        monitor.run_once()
        if args.once:
            return 0
        time.sleep(args.interval_seconds)


if __name__ == "__main__":
    raise SystemExit(main())
