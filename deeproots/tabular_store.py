"""Row-oriented table storage used for inventory, fleet, knowledge, and audit data.

Rows are 1-indexed and row 1 always holds the headers, so the first data row is
row 2. Column order is fixed per table (see config.*_HEADERS).
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger("deeproots.store")

Row = List[object]


class TableNotFoundError(KeyError):
    """Raised when a table has never been created in the store."""


class RowIndexError(IndexError):
    """Raised when a row or column address falls outside a table."""


class TabularStore(ABC):
    """Abstract tabular store: ordered rows per named table."""

    @abstractmethod
    def read_all_rows(self, table: str) -> List[Row]:
        """Return a copy of every row in the table, header row first."""

    @abstractmethod
    def write_cell(self, table: str, row: int, col: int, value: object) -> None:
        """Overwrite a single cell addressed by 1-indexed row and column."""

    @abstractmethod
    def append_row(self, table: str, values: Sequence[object]) -> int:
        """Append a row and return its 1-indexed position."""

    @abstractmethod
    def delete_row(self, table: str, row: int) -> None:
        """Remove a data row; later rows shift up by one."""

    @abstractmethod
    def has_table(self, table: str) -> bool:
        """Return True when the table exists."""

    @abstractmethod
    def create_table(self, table: str, headers: Sequence[object]) -> None:
        """Create an empty table holding only the header row."""

    def ensure_table(self, table: str, headers: Sequence[object]) -> None:
        # Create the table with headers when it does not exist yet.
        if not self.has_table(table):
            self.create_table(table, headers)


class MemoryTabularStore(TabularStore):
    """In-process store backed by plain lists; used by tests and as the JSON store base."""

    def __init__(self, tables: Optional[Dict[str, List[Sequence[object]]]] = None) -> None:
        self._tables: Dict[str, List[Row]] = {}
        for name, rows in (tables or {}).items():
            self._tables[name] = [list(row) for row in rows]

    def read_all_rows(self, table: str) -> List[Row]:
        return copy.deepcopy(self._table(table))

    def write_cell(self, table: str, row: int, col: int, value: object) -> None:
        rows = self._table(table)
        self._check_data_row(table, rows, row)
        if col < 1:
            raise RowIndexError(f"column {col} is out of range for {table}")
        target = rows[row - 1]
        if col > len(target):
            target.extend([""] * (col - len(target)))
        target[col - 1] = value
        self._on_change()

    def append_row(self, table: str, values: Sequence[object]) -> int:
        rows = self._table(table)
        rows.append(list(values))
        self._on_change()
        return len(rows)

    def delete_row(self, table: str, row: int) -> None:
        rows = self._table(table)
        self._check_data_row(table, rows, row)
        del rows[row - 1]
        self._on_change()

    def has_table(self, table: str) -> bool:
        return table in self._tables

    def create_table(self, table: str, headers: Sequence[object]) -> None:
        self._tables[table] = [list(headers)]
        self._on_change()

    def snapshot(self) -> Dict[str, List[Row]]:
        return copy.deepcopy(self._tables)

    def _table(self, table: str) -> List[Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise TableNotFoundError(table) from None

    @staticmethod
    def _check_data_row(table: str, rows: List[Row], row: int) -> None:
        # Row 1 is the header row and is never addressed by data writes.
        if row < 2 or row > len(rows):
            raise RowIndexError(f"row {row} is out of range for {table}")

    def _on_change(self) -> None:
        """Hook invoked after every successful write."""


class JsonTabularStore(MemoryTabularStore):
    """Tabular store persisted to a single JSON file after every write."""

    def __init__(self, path: Path) -> None:
        """Purpose: Initialize the store and hydrate tables from disk if available.
        Inputs/Outputs: Input is the JSON file path; no return value.
        Side Effects / State: Loads tables into memory; creates the parent directory.
        Dependencies: Calls _load; reuses MemoryTabularStore for row operations.
        Failure Modes: A corrupt JSON file is logged and treated as an empty store.
        If Removed: Inventory edits are lost on restart.
        Testing Notes: Write a row, build a new store on the same path, read it back.
        """
        # Keep the backing file and preload persisted tables if present.
        super().__init__()
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("store file %s is not valid JSON; starting empty", self._path)
            return
        tables = data.get("tables", {}) if isinstance(data, dict) else {}
        for name, rows in tables.items():
            if isinstance(rows, list):
                self._tables[name] = [list(row) for row in rows if isinstance(row, list)]

    def _on_change(self) -> None:
        """Purpose: Persist all tables to disk after a write.
        Inputs/Outputs: Writes to self._path; no return value.
        Side Effects / State: Replaces the JSON file atomically via a temp file.
        Dependencies: Uses json.dumps and Path.replace.
        Failure Modes: IO errors raise to the caller (the write is not acknowledged).
        If Removed: Writes only live in memory.
        Testing Notes: Ensure the file is created and a temp file does not linger.
        """
        # Serialize to a sibling temp file, then swap it in.
        payload = {"tables": self._tables}
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
        tmp_path.replace(self._path)
