"""
Main entrypoint: sync scheduler (ingest + hourly aggregation) until SIGINT/SIGTERM.

Env: DB_PATH, HORIZON_URL, SYNC_INTERVAL_SECONDS, CACHE_URL, LOG_LEVEL, LOG_FORMAT, etc.
Equivalent to: python -m backend_insights
"""

import sys

# Configure structured JSON logging before other imports that may log
from backend_insights.insights_logging import get_logger

logger = get_logger("main")


def main() -> int:
    from backend_insights.runtime import main as run_main

    logger.info("main_starting")
    return run_main()


if __name__ == "__main__":
    sys.exit(main())
