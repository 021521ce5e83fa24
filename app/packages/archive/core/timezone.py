"""时间格式化：对外输出的时间统一转换到配置时区。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.packages.archive.core.config import get_settings

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def to_local(value: Optional[datetime]) -> Optional[datetime]:
    """转换到配置时区；SQLite 读回的是无时区时间，按 UTC 解释。"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_settings().timezone_info)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    localized = to_local(value)
    return localized.strftime(DATETIME_FORMAT) if localized is not None else None
