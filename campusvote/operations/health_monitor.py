# campusvote/operations/health_monitor.py
# Liveness/Readiness health checks (DB, disk, clock)

import os
import shutil
import logging
from typing import Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from campusvote import db
from campusvote.operations.time_sync import check_time_sync

logger = logging.getLogger(__name__)

MIN_FREE_DISK_GB = float(os.getenv("MIN_FREE_DISK_GB", "1"))
MAX_TIME_OFFSET_S = float(os.getenv("MAX_TIME_OFFSET_S", "0.5"))


def _check_db() -> Dict:
    try:
        db.session.execute(text("SELECT 1"))
        return {"ok": True, "detail": "database reachable"}
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Database health check failed: %s", e)
        # Driver messages stay in the server log
        return {"ok": False, "detail": "database unreachable"}


def _check_disk() -> Dict:
    total, used, free = shutil.disk_usage(".")
    free_gb = free / (1024**3)
    return {"ok": free_gb >= MIN_FREE_DISK_GB, "free_gb": round(free_gb, 2), "min_required_gb": MIN_FREE_DISK_GB}


def _check_time() -> Dict:
    # Voting windows are judged against this clock
    res = check_time_sync()
    res["policy_max_offset_s"] = MAX_TIME_OFFSET_S
    res["overall_ok"] = res["overall_ok"] and all(
        abs(r.get("offset_s", 0)) <= MAX_TIME_OFFSET_S for r in res["results"] if "offset_s" in r
    )
    return res


def check_readiness() -> Dict:
    dbc = _check_db()
    disk = _check_disk()
    return {"db": dbc, "disk": disk, "overall_ok": dbc["ok"] and disk["ok"]}


def check_health() -> Dict:
    """Aggregate overall system health."""
    res = check_readiness()
    tm = _check_time()
    res["time"] = tm
    res["overall_ok"] = res["overall_ok"] and tm["overall_ok"]
    return res
