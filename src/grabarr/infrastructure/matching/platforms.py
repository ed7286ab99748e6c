"""Platform-family detection from free-text release titles."""

from __future__ import annotations

import re

PC = "pc"
PLAYSTATION = "playstation"
XBOX = "xbox"
NINTENDO = "nintendo"

# Underscores are normalised to spaces before matching so that
# "Game_PS4" still hits the word boundary.
_FAMILY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        PLAYSTATION,
        re.compile(
            r"\b(ps[1-5]|psvr2?|ps ?vita|psp|playstation(?: ?[1-5]| vr2?)?)\b"
        ),
    ),
    (
        XBOX,
        re.compile(
            r"\b(xbox(?: ?(?:one|360|series(?: ?[xs])?))?|xb1|xbone|x360|xsx|xss)\b"
        ),
    ),
    (
        NINTENDO,
        re.compile(r"\b(nintendo(?: switch)?|switch|nsw|ns2)\b"),
    ),
    (
        PC,
        re.compile(
            r"\b(pc|windows|win(?:32|64|dows)?|gog|steam|mac|macos|osx|linux)\b"
        ),
    ),
)


def detect_platform(text: str | None) -> str | None:
    """Return the platform family named in *text*, or None if none is.

    When several families appear, the one mentioned first wins.
    """
    if not text:
        return None
    lowered = text.lower().replace("_", " ")
    best: tuple[int, str] | None = None
    for family, pattern in _FAMILY_PATTERNS:
        match = pattern.search(lowered)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), family)
    return best[1] if best else None


def platform_family(platform: str | None) -> str | None:
    """Family of a target platform name (``"PC"``, ``"PlayStation 5"`` ...)."""
    if not platform or not platform.strip():
        return None
    lowered = platform.strip().lower()
    if lowered in (PC, PLAYSTATION, XBOX, NINTENDO):
        return lowered
    return detect_platform(lowered)
