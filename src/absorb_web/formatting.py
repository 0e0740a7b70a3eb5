from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

def format_date(timestamp: Optional[float]) -> str:
    """Unix seconds -> "Mar 5, 2021" (UTC); missing or 0 -> "Unknown"."""
    if not timestamp:
        return "Unknown"
    d = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return f"{d:%b} {d.day}, {d.year}"

def format_number(num: Optional[float]) -> str:
    if num is None:
        return "0"
    return f"{num:,}"

def format_duration(seconds: Optional[float]) -> str:
    if seconds is None:
        return "0m"
    hours, rest = divmod(int(seconds), 3600)
    minutes = rest // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"

def level_from_xp(total_xp: Optional[int]) -> int:
    return int(total_xp or 0) // 1000 + 1
