"""Type conversion utilities for loosely typed provider payloads."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

_NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def to_int(raw: Any) -> int | None:
    """Convert a wire value to int, return None if invalid.

    Handles:
        - None → None
        - int → int (passthrough, bool rejected)
        - float → truncated int (inf/nan → None)
        - "-3" / "1.5" → -3 / 1
        - "123" / "1,234" / "1 234" → 1234
        - "" or garbage → None
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, int):
        return raw

    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None

    if isinstance(raw, str):
        compact = raw.strip().replace(",", "").replace(" ", "")
        if _NUMBER_RE.match(compact):
            return int(compact.split(".", 1)[0])
        txt = "".join(ch for ch in raw if ch.isdigit())
        if not txt:
            return None
        return int(txt)

    return None


def to_float(raw: Any) -> float | None:
    """Convert a wire value to float, return None if invalid."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def epoch_to_year(raw: Any) -> int | None:
    """Unix timestamp (seconds) → UTC year, None if missing or invalid."""
    seconds = to_float(raw)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).year
    except (OverflowError, OSError, ValueError):
        return None
