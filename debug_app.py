"""Run the publisher API locally."""
import argparse
import os

import uvicorn

from src.shared.config import get_settings
from src.shared.logging import get_logger, setup_logging

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args()

    settings = get_settings()
    setup_logging()
    log = get_logger("debug_app")
    if not settings.redis_url:
        # InMemoryPublishLock only guards one process
        log.warning("REDIS_URL not set; publish lock is per-process, running a single worker")

    uvicorn.run(
        "src.main:app",
        host=args.host,
        port=args.port,
        workers=1,
        log_level=settings.log_level.lower(),
    )
