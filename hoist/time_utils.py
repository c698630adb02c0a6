from __future__ import annotations

import os
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def configured_timezone_name() -> str:
    return (os.getenv("HOIST_TIMEZONE") or "UTC").strip()


def configured_timezone() -> tzinfo:
    try:
        return ZoneInfo(configured_timezone_name())
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def now_local() -> datetime:
    return datetime.now(configured_timezone())


def unix_now() -> int:
    return int(datetime.now(timezone.utc).timestamp())
