"""Single-source resolvers: inventory, fleet, and knowledge-base search.

Each resolver answers from one table, memoizes the formatted answer in the
ResponseCache under "<tag>_<lowercase query>", and reports "no match" as None.
Any failure inside a resolver is logged and also reported as None so the
orchestrator can fall through to the next tier.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .cache import ResponseCache
from .catalog import FleetRecord, InventoryCatalog, InventoryItem, load_fleet, load_knowledge
from .matcher import ScoredMatch, best_match, rank_matches, score_fleet_record, score_item_name, score_question
from .quantity_parser import QuantityRequest, parse_quantity
from .tabular_store import TabularStore
from .utils import normalize_plural

logger = logging.getLogger("deeproots.search")


class Resolver(ABC):
    """Cache-first search over one table."""

    tag = ""

    def __init__(self, store: TabularStore, cache: ResponseCache, table: str, threshold: float) -> None:
        self._store = store
        self._cache = cache
        self._table = table
        self._threshold = threshold

    def search(self, query: str) -> Optional[str]:
        """Purpose: Answer a query from this resolver's table, cache first.
        Inputs/Outputs: Input is the raw query; output is a formatted answer or None.
        Side Effects / State: Stores non-empty answers in the ResponseCache.
        Dependencies: Calls the subclass _resolve on a cache miss.
        Failure Modes: Store or formatting errors are logged and return None.
        If Removed: Each tier would need its own cache and error handling.
        Testing Notes: Second identical call must not read the store.
        """
        # Serve from cache, otherwise resolve and remember the answer.
        if not query or not query.strip():
            return None
        key = ResponseCache.make_key(self.tag, query)
        cached = self._cache.get(key)
        if cached:
            logger.debug("cache hit key=%s", key)
            return cached
        try:
            answer = self._resolve(query)
        except Exception:
            logger.exception("%s search failed query=%s", self.tag, query)
            return None
        if answer:
            self._cache.set(key, answer)
        return answer

    @abstractmethod
    def _resolve(self, query: str) -> Optional[str]:
        """Compute the formatted answer without consulting the cache."""


class InventorySearch(Resolver):
    """Fuzzy item search with optional have-enough / short annotations."""

    tag = "inventory"

    def __init__(
        self,
        store: TabularStore,
        cache: ResponseCache,
        table: str,
        threshold: float = 30.0,
        default_min_stock: int = 10,
    ) -> None:
        super().__init__(store, cache, table, threshold)
        self._default_min_stock = default_min_stock

    def _resolve(self, query: str) -> Optional[str]:
        catalog = InventoryCatalog.load(self._store, self._table, default_min_stock=self._default_min_stock)
        if not len(catalog):
            return None
        request = parse_quantity(query)
        match_text = query
        if request is not None:
            # Match on what is left once "need 5 yards" is taken out.
            match_text = request.strip_from(query) or query
        matches = rank_matches(catalog.items, lambda item: score_item_name(match_text, item.name), self._threshold)
        if not matches:
            return None
        return format_inventory_answer(matches, request)


class FleetSearch(Resolver):
    tag = "truck"

    def _resolve(self, query: str) -> Optional[str]:
        records = load_fleet(self._store, self._table)
        matches = rank_matches(records, lambda record: score_fleet_record(query, record), self._threshold)
        if not matches:
            return None
        return format_fleet_answer(matches)


class KnowledgeSearch(Resolver):
    """Returns the answer of the single best-matching question."""

    tag = "knowledge"

    def _resolve(self, query: str) -> Optional[str]:
        entries = load_knowledge(self._store, self._table)
        best = best_match(entries, lambda entry: score_question(query, entry.question), self._threshold)
        if best is None:
            return None
        return best.record.answer


def availability_status(item: InventoryItem, request: Optional[QuantityRequest]) -> Optional[str]:
    """Purpose: Compare a requested amount with stock when the units agree.
    Inputs/Outputs: Inputs are the item and the parsed request; output is a status
        line or None.
    Side Effects / State: None.
    Dependencies: Units are compared directly and after normalize_plural.
    Failure Modes: Missing request, missing unit, or a unit mismatch return None.
    If Removed: Crews cannot tell from the answer whether stock covers the job.
    Testing Notes: 8 yards vs requested 5 is enough; 3 yards vs 5 is short.
    """
    # Only annotate when the request is in the same unit as the stock.
    if request is None or not request.unit:
        return None
    stocked = (item.unit or "").lower()
    requested = request.unit.lower()
    if stocked != requested and normalize_plural(stocked) != normalize_plural(requested):
        return None
    if item.quantity >= request.quantity:
        return f"✓ Have enough: {item.quantity} {item.unit} in stock (requested {request.quantity})"
    return f"✗ Short: only {item.quantity} {item.unit} available (requested {request.quantity})"


def format_inventory_answer(matches: List[ScoredMatch[InventoryItem]], request: Optional[QuantityRequest]) -> str:
    lines: List[str] = []
    for match in matches:
        item = match.record
        entry = f"• {item.name}: Quantity: {item.quantity} {item.unit}".rstrip()
        status = availability_status(item, request)
        if status:
            line = f"{status}\n{entry} • Location: {item.location}"
            if item.notes:
                line += f" • Notes: {item.notes}"
            lines.append(line)
            continue
        if item.is_low_stock:
            entry = f"⚠️ {entry} [LOW STOCK - Min: {item.min_stock}]"
        if item.location and item.location != "Unspecified":
            entry += f" • Location: {item.location}"
        if item.notes:
            entry += f" • Notes: {item.notes}"
        lines.append(entry)

    header = f"Found {len(matches)} matching items:\n\n" if len(matches) > 1 else ""
    return header + "\n".join(lines)


def format_fleet_answer(matches: List[ScoredMatch[FleetRecord]]) -> str:
    blocks: List[str] = []
    for match in matches:
        record = match.record
        block = [
            f"🚛 {record.name}",
            f"   Model: {record.model}",
            f"   Year: {record.year}",
            f"   License: {record.plate}",
            f"   Status: {record.status}",
        ]
        if record.last_maintenance:
            block.append(f"   Last Maintenance: {record.last_maintenance}")
        if record.next_maintenance:
            block.append(f"   Next Maintenance: {record.next_maintenance}")
        if record.notes:
            block.append(f"   Notes: {record.notes}")
        blocks.append("\n".join(block))

    header = f"Found {len(matches)} matching trucks:\n\n" if len(matches) > 1 else ""
    return header + "\n\n".join(blocks)
