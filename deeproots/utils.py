from __future__ import annotations

import re
from typing import List, Optional

# Domain plurals that the generic trailing-"s" rule gets wrong or misses.
PLURAL_MAP = {
    "plants": "plant",
    "boxes": "box",
    "grasses": "grass",
    "leaves": "leaf",
    "mulches": "mulch",
    "soils": "soil",
    "stones": "stone",
    "rocks": "rock",
    "flowers": "flower",
    "trees": "tree",
    "shrubs": "shrub",
    "bushes": "bush",
    "perennials": "perennial",
    "annuals": "annual",
    "bags": "bag",
    "flats": "flat",
    "yards": "yard",
    "pounds": "pound",
    "gallons": "gallon",
}

UNIT_SYNONYMS = {
    "yard": "yards",
    "yards": "yards",
    "yd": "yards",
    "yds": "yards",
    "plant": "plants",
    "plants": "plants",
    "flat": "flats",
    "flats": "flats",
    "bag": "bags",
    "bags": "bags",
    "gallon": "gallons",
    "gallons": "gallons",
    "gal": "gallons",
    "gals": "gallons",
    "pound": "pounds",
    "pounds": "pounds",
    "lb": "pounds",
    "lbs": "pounds",
    "each": "each",
}

_PLURAL_PATTERNS = [(re.compile(rf"\b{plural}\b"), singular) for plural, singular in PLURAL_MAP.items()]
_TRAILING_S_RE = re.compile(r"(\w+)s\b")
_SEPARATOR_RE = re.compile(r"[-\s_]")
_REPEAT_RE = re.compile(r"(.)\1+")


def normalize_plural(text: str) -> str:
    """Purpose: Fold plural words to their singular form for matching only.
    Inputs/Outputs: Input is raw text; output is lowercase text with domain plurals
        mapped through PLURAL_MAP and any other trailing "s" stripped.
    Side Effects / State: None; pure function.
    Dependencies: Uses PLURAL_MAP and regex; called by the matcher and the
        inventory availability check.
    Failure Modes: Returns an empty string for falsy input. Words whose stem ends in
        s/x/z keep their "s" so "grass" or "moss" are not corrupted.
    If Removed: "bags" no longer matches "bag" and inventory recall drops.
    Testing Notes: normalize_plural(normalize_plural(x)) == normalize_plural(x) and
        "plants"/"plant" fold to the same value.
    """
    # Apply the domain table first, then the generic trailing-s rule.
    if not text:
        return ""
    normalized = text.lower()
    for pattern, singular in _PLURAL_PATTERNS:
        normalized = pattern.sub(singular, normalized)
    return _TRAILING_S_RE.sub(_strip_trailing_s, normalized)


def _strip_trailing_s(match: re.Match) -> str:
    stem = match.group(1)
    if stem.endswith(("s", "x", "z")):
        return match.group(0)
    return stem


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    """Purpose: Canonicalize a unit word ("yd", "yard", "yds" -> "yards").
    Inputs/Outputs: Input is a unit string or None; output is the canonical unit,
        the lowercased input when unknown, or None for empty input.
    Side Effects / State: None.
    Dependencies: Uses UNIT_SYNONYMS; called by the quantity parser.
    Failure Modes: Unknown units pass through unchanged.
    If Removed: Requested units stop lining up with stocked units.
    Testing Notes: Check abbreviations and an unknown unit.
    """
    # Look up the synonym table on the lowercased unit.
    if not unit:
        return None
    cleaned = unit.strip().lower()
    return UNIT_SYNONYMS.get(cleaned, cleaned)


def tokenize(text: str) -> List[str]:
    """Split lowercase text on whitespace, dropping empty tokens."""
    return [token for token in (text or "").lower().split() if token]


def strip_separators(text: str) -> str:
    # Hyphens, whitespace and underscores.
    return _SEPARATOR_RE.sub("", text or "")


def collapse_repeats(text: str) -> str:
    # "arborvittae" -> "arborvitae"
    return _REPEAT_RE.sub(r"\1", text or "")


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()
