"""Parsing utilities for provider wire values."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

_SIZE_RE = re.compile(r"([\d.]+)\s*([KMGT]?I?B)")

_MULTIPLIERS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


def parse_size_to_bytes(size: Any) -> int:
    """Parse a size value to bytes.

    Supports formats:
        - 1234 / "1234" (raw bytes)
        - "4.5 GB" / "4.5 GiB"
        - "500 MB"
        - "1.2 TB"

    Returns 0 for anything unparseable, negative or non-finite.
    """
    if size is None or isinstance(size, bool):
        return 0
    if isinstance(size, float) and not math.isfinite(size):
        return 0
    if isinstance(size, (int, float)):
        return max(int(size), 0)
    if not isinstance(size, str) or not size:
        return 0

    size = size.strip()
    if size.isdigit():
        return int(size)

    match = _SIZE_RE.match(size.upper())
    if not match:
        return 0

    try:
        value = float(match.group(1))
    except ValueError:
        return 0
    unit = match.group(2).replace("IB", "B")
    total = value * _MULTIPLIERS.get(unit, 1)
    if not math.isfinite(total):
        return 0
    return int(total)


def parse_datetime(raw: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None if unparseable.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
