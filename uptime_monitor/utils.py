import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")

STAKE_SCALE = Decimal("1e-9")


class AverageCollector:
    """Running mean of same-tick observations."""

    def __init__(self):
        self.sum = 0.0
        self.count = 0

    def add(self, value: float) -> "AverageCollector":
        self.sum += float(value)
        self.count += 1
        return self

    def average(self) -> float:
        if self.count == 0:
            return 0.0
        return self.sum / self.count


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_stake(amount: Decimal | int | str) -> float:
    """Convert a base-unit stake amount to the display unit."""
    return float(Decimal(amount) * STAKE_SCALE)


def to_prometheus_time(diff_ms: float) -> str:
    """
    Format a time difference given in milliseconds as a Prometheus duration
    rounded to seconds, e.g. 1d3h5m30s. Zero renders as "0s".
    """
    total = int(math.floor(diff_ms / 1000 + 0.5))
    seconds = total % 60
    total //= 60
    minutes = total % 60
    total //= 60
    hours = total % 24
    days = total // 24

    res = ""
    if days > 0:
        res += f"{days}d"
    if hours > 0:
        res += f"{hours}h"
    if minutes > 0:
        res += f"{minutes}m"
    if seconds > 0:
        res += f"{seconds}s"
    return res or "0s"


def parse_query_result(
    data: dict, transform: Optional[Callable[[float], T]] = None
) -> Optional[T | float]:
    """
    Extract the first sample value of a Prometheus query result.

    Returns None when the result set is empty. Instant vectors carry "value",
    range vectors "values" (the last sample is used).
    """
    result = (data or {}).get("result") or []
    if not result:
        return None
    item: dict[str, Any] = result[0]
    if "value" in item:
        value = float(item["value"][1])
    elif item.get("values"):
        value = float(item["values"][-1][1])
    else:
        return None
    return transform(value) if transform else value
