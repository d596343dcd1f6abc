"""Relevance scoring shared by the inventory, fleet, and knowledge searches.

Every record is scored on the same ladder (first rung that applies wins):
    100  exact case-insensitive match on the primary field
     80  primary field contains the whole query
     95  (inventory) equal after plural folding
     75  (inventory) contains the query after plural folding
     60  every query token appears inside the record
    0-50 share of query tokens found, times 50
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from .catalog import FleetRecord
from .utils import normalize_plural, tokenize

EXACT_SCORE = 100.0
PLURAL_EXACT_SCORE = 95.0
CONTAINS_SCORE = 80.0
PLURAL_CONTAINS_SCORE = 75.0
ALL_TOKENS_SCORE = 60.0
PARTIAL_WEIGHT = 50.0

T = TypeVar("T")


@dataclass
class ScoredMatch(Generic[T]):
    record: T
    score: float


def score_item_name(query: str, name: str) -> float:
    """Purpose: Score an inventory item name against a free-text query.
    Inputs/Outputs: Inputs are the query and the item name; output is 0-100.
    Side Effects / State: None; pure function.
    Dependencies: Uses normalize_plural for the 95/75 rungs and token matching.
    Failure Modes: Blank query or name scores 0.
    If Removed: Inventory search cannot rank items.
    Testing Notes: score_item_name("Red Mulch", "Red Mulch") == 100; "mulch bags"
        against "Bag - Mulch" reaches the token rung.
    """
    # Walk the ladder on raw lowercase text before plural folding.
    q = (query or "").strip().lower()
    item = (name or "").strip().lower()
    if not q or not item:
        return 0.0
    if item == q:
        return EXACT_SCORE
    if q in item:
        return CONTAINS_SCORE

    normalized_item = normalize_plural(item)
    normalized_query = normalize_plural(q)
    if normalized_item == normalized_query:
        return PLURAL_EXACT_SCORE
    if normalized_query in normalized_item:
        return PLURAL_CONTAINS_SCORE

    item_tokens = normalized_item.split()
    query_tokens = [normalize_plural(token) for token in tokenize(q)]
    return _token_score(query_tokens, lambda token: any(token in item_token for item_token in item_tokens))


def score_fleet_record(query: str, record: FleetRecord) -> float:
    """Purpose: Score a vehicle row against a query.
    Inputs/Outputs: Inputs are the query and a FleetRecord; output is 0-100.
    Side Effects / State: None.
    Dependencies: Uses fleet_searchable_text for the substring and token rungs.
    Failure Modes: Blank query scores 0.
    If Removed: Fleet search cannot rank vehicles.
    Testing Notes: An exact plate or truck name scores 100; "ford" hits the model.
    """
    # Name or plate equality is exact; everything else searches the joined text.
    q = (query or "").strip().lower()
    if not q:
        return 0.0
    if record.name.lower() == q or (record.plate and record.plate.lower() == q):
        return EXACT_SCORE
    searchable = fleet_searchable_text(record)
    if q in searchable:
        return CONTAINS_SCORE
    return _token_score(tokenize(q), lambda token: token in searchable)


def score_question(query: str, question: str) -> float:
    """Score a knowledge-base question against a query on the shared ladder."""
    q = (query or "").strip().lower()
    text = (question or "").strip().lower()
    if not q or not text:
        return 0.0
    if text == q:
        return EXACT_SCORE
    if q in text:
        return CONTAINS_SCORE
    return _token_score(tokenize(q), lambda token: token in text)


def fleet_searchable_text(record: FleetRecord) -> str:
    # Maintenance dates are not searchable.
    parts = (record.name, record.model, record.year, record.plate, record.status, record.notes)
    return " ".join(parts).lower()


def rank_matches(
    records: Iterable[T],
    score: Callable[[T], float],
    threshold: float,
) -> List[ScoredMatch[T]]:
    """Purpose: Score records, keep those above threshold, sort best first.
    Inputs/Outputs: Inputs are records, a scoring callable, and the cut-off; output is
        ScoredMatch list ordered by descending score.
    Side Effects / State: None.
    Dependencies: Python's stable sort keeps original order for equal scores.
    Failure Modes: Scores equal to the threshold are dropped.
    If Removed: Resolvers would each re-implement filtering and ordering.
    Testing Notes: Two equal scores must keep their input order.
    """
    # Filter strictly above threshold, then stable-sort by score.
    scored: List[ScoredMatch[T]] = []
    for record in records:
        value = score(record)
        if value > threshold:
            scored.append(ScoredMatch(record, value))
    scored.sort(key=lambda match: match.score, reverse=True)
    return scored


def best_match(
    records: Iterable[T],
    score: Callable[[T], float],
    threshold: float,
) -> Optional[ScoredMatch[T]]:
    """Return the first highest-scoring record, or None unless it beats threshold."""
    best: Optional[ScoredMatch[T]] = None
    for record in records:
        value = score(record)
        if value > 0 and (best is None or value > best.score):
            best = ScoredMatch(record, value)
    if best is None or best.score <= threshold:
        return None
    return best


def _token_score(query_tokens: Sequence[str], contains: Callable[[str], bool]) -> float:
    if not query_tokens:
        return 0.0
    matched = sum(1 for token in query_tokens if contains(token))
    if matched == len(query_tokens):
        return ALL_TOKENS_SCORE
    return matched / len(query_tokens) * PARTIAL_WEIGHT

