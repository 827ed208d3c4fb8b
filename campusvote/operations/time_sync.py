# campusvote/operations/time_sync.py
# Server clock helpers. Election windows are judged against this clock, so
# drift from NTP is reported by the health monitor.

import ntplib
from datetime import datetime, timezone
from typing import Dict, List

from campusvote.errors import ValidationError

NTP_SERVERS = [
    "pool.ntp.org",
    "time.google.com",
    "time.cloudflare.com",
]

# Maximum acceptable time offset in seconds
MAX_ALLOWED_OFFSET = 0.5


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value, field_name="timestamp") -> datetime:
    """
    Accept a datetime or an ISO-8601 string (browsers send a trailing 'Z')
    and return a naive UTC datetime. Raises ValidationError otherwise.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid {field_name} format")
    else:
        raise ValidationError(f"Invalid {field_name} format")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def isoformat(value):
    if value is None:
        return None
    return value.isoformat() + 'Z'


def check_time_sync() -> Dict:
    """
    Check time offset from multiple NTP servers.
    Returns:
        A dictionary containing offsets, average drift, and overall health.
    """
    results: List[Dict] = []
    total_offset = 0
    valid_servers = 0

    for server in NTP_SERVERS:
        try:
            client = ntplib.NTPClient()
            response = client.request(server, version=3, timeout=2)
            offset = response.offset
            total_offset += offset
            valid_servers += 1
            results.append({
                "server": server,
                "offset_s": round(offset, 6),
                "status": "ok" if abs(offset) <= MAX_ALLOWED_OFFSET else "drifted"
            })
        except (ntplib.NTPException, OSError) as e:
            results.append({
                "server": server,
                "error": str(e),
                "status": "failed"
            })

    avg_offset = round(total_offset / valid_servers, 6) if valid_servers else None
    overall_ok = avg_offset is not None and abs(avg_offset) <= MAX_ALLOWED_OFFSET

    return {
        "overall_ok": overall_ok,
        "average_offset_s": avg_offset,
        "max_allowed_offset_s": MAX_ALLOWED_OFFSET,
        "results": results
    }
