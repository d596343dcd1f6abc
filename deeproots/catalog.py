"""Typed views over the inventory, fleet, and knowledge tables.

Rows come from the TabularStore in fixed column order; this module converts them
into dataclasses and keeps the store row number alongside each record so writes
can be addressed back to the store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

from .tabular_store import Row, TabularStore

DEFAULT_LOCATION = "Unspecified"
DEFAULT_MIN_STOCK = 10

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class InventoryItem:
    """One stocked material; name is the identity (case-insensitive)."""
    name: str
    quantity: int
    unit: str = ""
    location: str = DEFAULT_LOCATION
    notes: str = ""
    min_stock: int = DEFAULT_MIN_STOCK

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < self.min_stock

    def to_row(self) -> Row:
        return [self.name, self.quantity, self.unit, self.location, self.notes, self.min_stock]


@dataclass
class FleetRecord:
    """One vehicle row; status is free text matched by substring."""
    name: str
    model: str = ""
    year: str = ""
    plate: str = ""
    status: str = ""
    last_maintenance: str = ""
    next_maintenance: str = ""
    notes: str = ""


@dataclass
class KnowledgeEntry:
    question: str
    answer: str


@dataclass
class Transaction:
    """Append-only audit record written for every committed inventory mutation."""
    action: str
    item: str
    quantity: int
    unit: str
    new_total: int
    notes: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_row(self) -> Row:
        return [
            self.timestamp.isoformat(timespec="seconds"),
            self.action,
            self.item,
            self.quantity,
            self.unit,
            self.new_total,
            self.notes,
        ]


@dataclass
class CatalogEntry:
    """An inventory item paired with its 1-indexed store row."""
    row: int
    item: InventoryItem


class InventoryCatalog:
    """Inventory rows indexed by normalized name, in store order.

    Duplicate names (same name ignoring case) are kept as separate entries so the
    duplicate detector can report them; the index points at the first one.
    """

    def __init__(self, entries: Sequence[CatalogEntry]) -> None:
        self._entries: List[CatalogEntry] = list(entries)
        self._by_key: Dict[str, CatalogEntry] = {}
        for entry in self._entries:
            self._by_key.setdefault(name_key(entry.item.name), entry)

    @classmethod
    def from_rows(cls, rows: Sequence[Row], default_min_stock: int = DEFAULT_MIN_STOCK) -> "InventoryCatalog":
        """Purpose: Build the catalog from raw table rows.
        Inputs/Outputs: Input is every table row including headers; output is a catalog.
        Side Effects / State: None.
        Dependencies: Uses parse_int and cell_text for lenient cell parsing.
        Failure Modes: Rows with a blank name are skipped; bad numbers fall back to
            0 for quantity and default_min_stock for min stock.
        If Removed: Every consumer would re-implement row parsing by column index.
        Testing Notes: Feed a header plus rows with blank names and text quantities.
        """
        # Skip the header row and keep the store row number with each item.
        entries: List[CatalogEntry] = []
        for index, row in enumerate(rows[1:], start=2):
            name = cell_text(row, 0)
            if not name:
                continue
            item = InventoryItem(
                name=name,
                quantity=parse_int(_cell(row, 1), 0),
                unit=cell_text(row, 2),
                location=cell_text(row, 3) or DEFAULT_LOCATION,
                notes=cell_text(row, 4),
                min_stock=parse_int(_cell(row, 5), default_min_stock),
            )
            entries.append(CatalogEntry(row=index, item=item))
        return cls(entries)

    @classmethod
    def load(cls, store: TabularStore, table: str, default_min_stock: int = DEFAULT_MIN_STOCK) -> "InventoryCatalog":
        return cls.from_rows(store.read_all_rows(table), default_min_stock=default_min_stock)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def items(self) -> List[InventoryItem]:
        return [entry.item for entry in self._entries]

    def find(self, name: str) -> Optional[CatalogEntry]:
        # Case-insensitive lookup; first row wins when names collide.
        return self._by_key.get(name_key(name))

    def find_exact(self, name: str) -> Optional[CatalogEntry]:
        target = (name or "").strip()
        for entry in self._entries:
            if entry.item.name == target:
                return entry
        return None


def load_fleet(store: TabularStore, table: str) -> List[FleetRecord]:
    """Read fleet rows, skipping the header and rows without a name."""
    records: List[FleetRecord] = []
    for row in store.read_all_rows(table)[1:]:
        name = cell_text(row, 0)
        if not name:
            continue
        records.append(
            FleetRecord(
                name=name,
                model=cell_text(row, 1),
                year=cell_text(row, 2),
                plate=cell_text(row, 3),
                status=cell_text(row, 4),
                last_maintenance=cell_text(row, 5),
                next_maintenance=cell_text(row, 6),
                notes=cell_text(row, 7),
            )
        )
    return records


def load_knowledge(store: TabularStore, table: str) -> List[KnowledgeEntry]:
    """Read question/answer rows; rows missing either side are dropped."""
    entries: List[KnowledgeEntry] = []
    for row in store.read_all_rows(table)[1:]:
        question = cell_text(row, 0)
        answer = cell_text(row, 1)
        if question and answer:
            entries.append(KnowledgeEntry(question=question, answer=answer))
    return entries


def name_key(name: str) -> str:
    return (name or "").strip().lower()


def parse_int(value: object, default: int) -> int:
    """Purpose: Read an integer from a loosely typed cell ("12", 12.0, "12 bags").
    Inputs/Outputs: Inputs are the raw cell and a default; output is an int.
    Side Effects / State: None.
    Dependencies: Uses a leading-integer regex for text cells.
    Failure Modes: Blank or non-numeric cells return the default; booleans are
        treated as non-numeric.
    If Removed: Text quantities from hand-edited sheets crash the loaders.
    Testing Notes: Check "12 bags", 7.9, "", None, and "abc".
    """
    # Accept ints and floats directly, otherwise parse a leading integer.
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def cell_text(row: Sequence[object], index: int) -> str:
    value = _cell(row, index)
    if value is None:
        return ""
    return str(value).strip()


def _cell(row: Sequence[object], index: int) -> object:
    if index < len(row):
        return row[index]
    return None
