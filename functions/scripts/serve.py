"""
Run the flashcard service with uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import uvicorn

from backend.config import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="KPSS cards web service")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="Bind port")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override LOG_LEVEL",
    )
    args = parser.parse_args()

    settings = get_settings()
    log_level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(
        level=log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    uvicorn.run(
        "backend.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
