"""Near-duplicate detection over inventory item names.

Similarity (case-insensitive):
    1.0   identical names
    0.9   one name contains the other
    else  1 - levenshtein / longer length, raised by TYPO_BOOST (capped at
          TYPO_CAP) when the pair looks like a common typo: separators only,
          a single adjacent swap, or doubled letters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from rapidfuzz.distance import Levenshtein

from .catalog import CatalogEntry, InventoryCatalog
from .utils import collapse_repeats, strip_separators

DUPLICATE_THRESHOLD = 0.8
CONTAINMENT_SIMILARITY = 0.9
TYPO_BOOST = 0.2
TYPO_CAP = 0.95


@dataclass
class DuplicateCandidate:
    name: str
    row: int
    quantity: int
    unit: str
    location: str

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "DuplicateCandidate":
        item = entry.item
        return cls(name=item.name, row=entry.row, quantity=item.quantity, unit=item.unit, location=item.location)


@dataclass
class DuplicatePair:
    """Two catalog rows whose names are similar enough to need a human merge decision."""
    item_a: DuplicateCandidate
    item_b: DuplicateCandidate
    similarity: int


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit-cost insert, delete, and substitute."""
    return Levenshtein.distance(a, b)


def edit_similarity(a: str, b: str) -> float:
    # 1 - distance / longer length; two empty strings are identical.
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def is_common_typo(a: str, b: str) -> bool:
    """Purpose: Decide whether two lowercase names differ only by a common typo.
    Inputs/Outputs: Inputs are two lowercase strings; output is True for a typo pair.
    Side Effects / State: None.
    Dependencies: Uses strip_separators, is_adjacent_transposition, collapse_repeats.
    Failure Modes: None; purely lexical.
    If Removed: Pairs like "arborvitae"/"arborvittae" drop below the flag threshold.
    Testing Notes: Cover "red-mulch"/"red mulch", "teh"/"the", and doubled letters.
    """
    # Separators, then a single adjacent swap, then doubled letters.
    if strip_separators(a) == strip_separators(b):
        return True
    if is_adjacent_transposition(a, b):
        return True
    return collapse_repeats(a) == collapse_repeats(b)


def is_adjacent_transposition(a: str, b: str) -> bool:
    """True when equal-length strings differ only by one swapped neighbouring pair."""
    if len(a) != len(b):
        return False
    diffs = [index for index, (left, right) in enumerate(zip(a, b)) if left != right]
    if len(diffs) != 2 or diffs[1] != diffs[0] + 1:
        return False
    first, second = diffs
    return a[first] == b[second] and a[second] == b[first]


def calculate_similarity(name_a: str, name_b: str) -> float:
    """Purpose: Score how likely two item names refer to the same material.
    Inputs/Outputs: Inputs are two names; output is a similarity in [0, 1].
    Side Effects / State: None.
    Dependencies: Uses edit_similarity (rapidfuzz Levenshtein) and is_common_typo.
    Failure Modes: None; the typo boost never lowers the edit similarity.
    If Removed: find_duplicates cannot rank candidate pairs.
    Testing Notes: "Arborvitae" vs "Arborvittae" scores 0.95; identical names score 1.
    """
    # Equality and containment short-circuit the edit-distance path.
    s1 = name_a.lower()
    s2 = name_b.lower()
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return CONTAINMENT_SIMILARITY
    similarity = edit_similarity(s1, s2)
    if is_common_typo(s1, s2):
        return max(similarity, min(similarity + TYPO_BOOST, TYPO_CAP))
    return similarity


def find_duplicates(catalog: InventoryCatalog, threshold: float = DUPLICATE_THRESHOLD) -> List[DuplicatePair]:
    """Purpose: List every unordered pair of catalog rows with similar names.
    Inputs/Outputs: Inputs are the catalog and a similarity cut-off; output is the
        flagged pairs in row order (a before b).
    Side Effects / State: None; read-only over the catalog.
    Dependencies: Uses calculate_similarity for each pair.
    Failure Modes: Quadratic in catalog size; blank names never reach here because
        the catalog skips them.
    If Removed: Merge candidates must be found by hand.
    Testing Notes: A pair exactly at the threshold is not flagged.
    """
    # Compare each entry with every later entry.
    entries = list(catalog)
    pairs: List[DuplicatePair] = []
    for index, first in enumerate(entries):
        for second in entries[index + 1 :]:
            similarity = calculate_similarity(first.item.name, second.item.name)
            if similarity > threshold:
                pairs.append(
                    DuplicatePair(
                        item_a=DuplicateCandidate.from_entry(first),
                        item_b=DuplicateCandidate.from_entry(second),
                        similarity=_percent(similarity),
                    )
                )
    return pairs


def _percent(similarity: float) -> int:
    # Round half up.
    return int(math.floor(similarity * 100 + 0.5))
