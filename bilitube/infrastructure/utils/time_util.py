import time
from datetime import datetime, timezone
from typing import Callable

# 可注入的时钟类型：返回秒级单调时间
Clock = Callable[[], float]


def get_unix_timestamp():
    return int(time.time())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_z(dt: datetime) -> str:
    """2025-12-16T00:00:00Z 风格的 UTC 时间串"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now_iso() -> str:
    return to_iso_z(utc_now())
