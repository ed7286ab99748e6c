"""Title normalisation for release and catalog matching.

Pure transformation logic, no I/O. ``normalize`` is idempotent and total:
any input (including None or non-strings) yields a string.
"""

from __future__ import annotations

import re
from typing import Any

from unidecode import unidecode as _unidecode

_MARKS_RE = re.compile(r"[™®©℠]")
_APOSTROPHE_RE = re.compile(r"['‘’`´]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")

# Longest numerals first so "xiii" never matches as "xi" + "ii".
_ROMAN = {
    "xiii": "13",
    "xii": "12",
    "xi": "11",
    "x": "10",
    "ix": "9",
    "viii": "8",
    "vii": "7",
    "vi": "6",
    "v": "5",
    "iv": "4",
    "iii": "3",
    "ii": "2",
    "i": "1",
}
_ARABIC = {arabic: roman for roman, arabic in _ROMAN.items()}

_ROMAN_RE = re.compile(r"\b(" + "|".join(_ROMAN) + r")\b")
_ROMAN_WORD_RE = re.compile(r"\b(" + "|".join(_ROMAN) + r")\b", re.IGNORECASE)
_ARABIC_WORD_RE = re.compile(r"\b(1[0-3]|[1-9])\b")

# Bidirectional contractions used only to retry empty searches.
_CONTRACTIONS: tuple[tuple[str, str], ...] = (
    ("brothers", "bros"),
    ("versus", "vs"),
    ("and", "&"),
    ("doctor", "dr"),
    ("mister", "mr"),
    ("saint", "st"),
    ("episode", "ep"),
    ("volume", "vol"),
    ("part", "pt"),
    ("chapter", "ch"),
)


def normalize(text: Any) -> str:
    """Canonical comparable form of a title.

    Lower-cases, drops trademark glyphs and apostrophes, transliterates to
    ASCII, turns remaining punctuation into spaces, replaces Roman numerals
    I-XIII (whole words only) with digits and collapses whitespace.
    """
    text = _strip(text)
    text = _ROMAN_RE.sub(lambda m: _ROMAN[m.group(1)], text)
    return " ".join(text.split())


def search_terms(text: Any) -> str:
    """Like :func:`normalize` but leaves numerals alone.

    Used to turn spelling variations into indexer queries without folding
    "III" back into "3".
    """
    return " ".join(_strip(text).split())


def _strip(text: Any) -> str:
    if not isinstance(text, str) or not text:
        return ""
    text = _MARKS_RE.sub("", text.lower())
    text = _APOSTROPHE_RE.sub("", text)
    text = _unidecode(text).lower()
    # unidecode may emit apostrophes of its own (e.g. for modifier letters).
    text = _APOSTROPHE_RE.sub("", text)
    return _NON_ALNUM_RE.sub(" ", text)


def _swap_word(text: str, source: str, replacement: str) -> str:
    if source == "&":
        return re.sub(r"\s*&\s*", f" {replacement} ", text).strip()
    pattern = re.compile(rf"(?<![\w]){re.escape(source)}(?![\w])", re.IGNORECASE)

    def _replace(match: re.Match[str]) -> str:
        word = match.group(0)
        if word.isupper() and len(word) > 1:
            return replacement.upper()
        if word[0].isupper():
            return replacement[0].upper() + replacement[1:]
        return replacement

    return pattern.sub(_replace, text)


def generate_variations(text: Any) -> list[str]:
    """Alternate spellings for retrying a search that came back empty.

    Produces contraction/expansion swaps, Roman/Arabic numeral swaps and the
    subtitle-less form. The input itself is never included.
    """
    if not isinstance(text, str) or not text.strip():
        return []
    original = " ".join(text.split())
    candidates: list[str] = []

    for long_form, short_form in _CONTRACTIONS:
        for source, replacement in ((long_form, short_form), (short_form, long_form)):
            swapped = _swap_word(original, source, replacement)
            if swapped != original:
                candidates.append(swapped)

    to_arabic = _ROMAN_WORD_RE.sub(lambda m: _ROMAN[m.group(1).lower()], original)
    candidates.append(to_arabic)
    candidates.append(
        _ARABIC_WORD_RE.sub(lambda m: _ARABIC[m.group(1)].upper(), original)
    )

    if ":" in original or " - " in original:
        candidates.append(re.split(r":| - ", original, maxsplit=1)[0].strip())

    seen = {original.lower()}
    out: list[str] = []
    for candidate in candidates:
        candidate = " ".join(candidate.split())
        if candidate and candidate.lower() not in seen:
            seen.add(candidate.lower())
            out.append(candidate)
    return out


# ----------------------------------------------------------------------
# Release-name cleaning for metadata lookups
# ----------------------------------------------------------------------

_SCENE_GROUPS = (
    "CODEX", "SKIDROW", "PLAZA", "RELOADED", "PROPHET", "CPY", "HOODLUM",
    "STEAMPUNKS", "GOLDBERG", "FLT", "RAZOR1911", "TENOKE", "DARKSiDERS",
    "RUNE", "GOG", "DODI", "FitGirl", "ElAmigos", "CHRONOS", "TiNYiSO",
    "I_KnoW", "SiMPLEX", "DINOByTES", "ANOMALY", "EMPRESS",
    "P2P", "PROPER", "INTERNAL", "KaOs", "Portable", "x64", "x86",
)

_EDITION_PHRASES = (
    r"Game of the Year", r"Director'?s Cut", r"Directors? Cut",
    r"Collector'?s Edition", r"Collectors? Edition", r"Limited Edition",
    r"Special Edition", r"Gold Edition", r"Premium Edition",
    r"Digital Edition", r"Digital Deluxe", r"Super Deluxe",
    r"Complete Edition", r"Definitive Edition", r"Enhanced Edition",
    r"Ultimate Edition", r"Deluxe Edition", r"Standard Edition",
    r"Legendary Edition", r"Base Game", r"All DLCs?", r"incl\.?\s*DLCs?",
    r"\+\s*DLCs?", r"with\s+DLCs?", r"and\s+DLCs?",
)

_TAGS = (
    r"Repack", r"MULTi\d*", r"RIP", r"Cracked", r"Crack", r"DLC", r"DLCs",
    r"GOTY", r"Complete", r"Edition", r"Deluxe", r"Ultimate", r"Definitive",
    r"Enhanced", r"Remastered", r"Anniversary", r"Remake", r"Digital",
    r"Steam", r"Epic", r"Uplay", r"Origin", r"Collectors?", r"Limited",
    r"Special", r"Gold", r"Premium", r"Standard", r"Directors?", r"Extended",
    r"Expanded", r"Uncut", r"Uncensored", r"Bundle", r"Trilogy", r"Anthology",
    r"FHD", r"4K", r"UHD", r"SDR", r"HDR", r"Windows", r"Win", r"Mac",
    r"Linux", r"Incl", r"Including",
)

_VERSION_RE = re.compile(r"[\s.\-_][vV]\d+(\.\d+)*")
_DOTTED_VERSION_RE = re.compile(r"[.\-_]\d+(\.\d+)+")
_SEPARATOR_RE = re.compile(r"[._-]")
_SCENE_RE = re.compile(
    r"\b(" + "|".join(re.escape(g) for g in _SCENE_GROUPS) + r")\b", re.IGNORECASE
)
_BRACKETS_RE = re.compile(r"\[[^\]]*\]|\([^)]*\)")
_BARE_VERSION_RE = re.compile(r"\b[vV]\d+\b")
_BUILD_RE = re.compile(r"\b(build|patch|update|updated|hotfix)\s*\d*\b", re.IGNORECASE)
_EDITION_RE = re.compile("|".join(_EDITION_PHRASES), re.IGNORECASE)
_TAGS_RE = re.compile(r"\b(" + "|".join(_TAGS) + r")\b", re.IGNORECASE)


def clean_release_title(text: Any) -> str:
    """Strip scene/version/edition noise from a release or folder name.

    ``"Cyberpunk.2077.v2.1-GOG"`` becomes ``"Cyberpunk 2077"``. Trailing
    numbers that may belong to the title (``"Far Cry 4"``) are kept.
    """
    if not isinstance(text, str) or not text:
        return ""
    cleaned = _VERSION_RE.sub(" ", text)
    cleaned = _DOTTED_VERSION_RE.sub(" ", cleaned)
    # Before separators become spaces, so "I_KnoW" is still one token.
    cleaned = _SCENE_RE.sub(" ", cleaned)
    cleaned = _SEPARATOR_RE.sub(" ", cleaned)
    cleaned = _SCENE_RE.sub(" ", cleaned)
    cleaned = _BRACKETS_RE.sub(" ", cleaned)
    cleaned = _BARE_VERSION_RE.sub(" ", cleaned)
    cleaned = _BUILD_RE.sub(" ", cleaned)
    cleaned = _EDITION_RE.sub(" ", cleaned)
    cleaned = _TAGS_RE.sub(" ", cleaned)
    return " ".join(cleaned.split())
