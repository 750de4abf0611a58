from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

MONEY_EPSILON = 0.01  # one cent


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def parse_iso(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def new_id() -> str:
    return str(uuid.uuid4())


def to_qty(value: Any) -> int:
    """
    Lenient quantity parsing: anything non-numeric or negative becomes 0.
    Floats are truncated ("3.9" -> 3).
    """
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, n)


def to_money(value: Any) -> float:
    try:
        m = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(m) or m < 0:
        return 0.0
    return round(m, 2)


def to_cents(value: float) -> int:
    return int(round(float(value) / MONEY_EPSILON))


def money_eq(a: float, b: float) -> bool:
    return to_cents(a) == to_cents(b)


def money_gte(a: float, b: float) -> bool:
    return to_cents(a) >= to_cents(b)
