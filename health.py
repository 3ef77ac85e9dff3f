import logging
import resource
import sys
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

import config
import database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

STARTED = time.monotonic()


def current_db():
    # Unlike get_db this never raises; an unconfigured database is reported, not fatal.
    return database.db


def database_status(db) -> str:
    if db is None:
        return "Not configured"
    try:
        db.command("ping")
        return "Connected"
    except Exception as e:
        logger.warning("Database ping failed: %s", str(e)[:100])
        return "Disconnected"


def max_rss_mb() -> float:
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(usage / divisor, 2)


@router.get("/health")
def health(db=Depends(current_db)):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED, 3),
        "environment": config.ENVIRONMENT,
        "version": config.VERSION,
        "database": database_status(db),
        "memory": {"maxRssMb": max_rss_mb()},
    }
