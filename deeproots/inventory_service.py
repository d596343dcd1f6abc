"""Inventory mutations, batch import, and duplicate merging.

Every committed change goes through InventoryService._commit, which appends the
audit records and then clears the answer cache. Failed or rejected operations
never reach the commit path and leave the store untouched.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from .audit import TransactionLog
from .cache import ResponseCache
from .catalog import (
    DEFAULT_LOCATION,
    CatalogEntry,
    InventoryCatalog,
    InventoryItem,
    Transaction,
    parse_int,
)
from .config import INVENTORY_TABLE
from .duplicates import DUPLICATE_THRESHOLD, DuplicatePair, find_duplicates
from .models import (
    BatchImportResult,
    BatchLineResult,
    InventoryAction,
    InventoryUpdate,
    MutationResult,
)
from .tabular_store import TabularStore

logger = logging.getLogger("deeproots.inventory")

QUANTITY_COL = 2
LOCATION_COL = 4
NOTES_COL = 5
MIN_STOCK_COL = 6

Outcome = Tuple[MutationResult, List[Transaction]]


class InventoryService:
    """Owns every write to the inventory table."""

    def __init__(
        self,
        store: TabularStore,
        cache: ResponseCache,
        audit: TransactionLog,
        table: str = INVENTORY_TABLE,
        default_min_stock: int = 10,
        duplicate_threshold: float = DUPLICATE_THRESHOLD,
    ) -> None:
        """Purpose: Wire the service to its store, cache, and audit sink.
        Inputs/Outputs: Inputs are collaborators, the table name, and tuned defaults;
            no return value.
        Side Effects / State: Builds the action dispatch table.
        Dependencies: TabularStore, ResponseCache, TransactionLog.
        Failure Modes: None at init.
        If Removed: The API has no way to change stock.
        Testing Notes: Build with MemoryTabularStore and MemoryCacheStore.
        """
        # Keep collaborators and map each action to its handler.
        self._store = store
        self._cache = cache
        self._audit = audit
        self._table = table
        self._default_min_stock = default_min_stock
        self._duplicate_threshold = duplicate_threshold
        self._handlers: Dict[InventoryAction, Callable[[InventoryUpdate, InventoryCatalog], Outcome]] = {
            InventoryAction.ADD: self._add,
            InventoryAction.SUBTRACT: self._subtract,
            InventoryAction.UPDATE: self._update_info,
        }

    def catalog(self) -> InventoryCatalog:
        return InventoryCatalog.load(self._store, self._table, default_min_stock=self._default_min_stock)

    def apply(self, payload: Union[InventoryUpdate, Mapping[str, object]]) -> MutationResult:
        """Purpose: Validate and apply one add/subtract/update mutation.
        Inputs/Outputs: Input is an InventoryUpdate or a raw mapping; output is a
            MutationResult describing success or the reason for failure.
        Side Effects / State: Writes the store, appends audit rows, clears the cache
            when the mutation commits.
        Dependencies: Uses the action dispatch table and _commit.
        Failure Modes: Invalid payloads, unknown items, and over-subtraction return
            success=False; store errors are logged and returned as failures.
        If Removed: Stock levels can only be edited in the raw table.
        Testing Notes: Over-subtract and verify the table is unchanged.
        """
        # Validate first so malformed input never touches the store.
        try:
            update = payload if isinstance(payload, InventoryUpdate) else InventoryUpdate.model_validate(payload)
        except ValidationError as exc:
            return MutationResult(success=False, message=validation_message(exc))

        try:
            result, transactions = self._handlers[update.action](update, self.catalog())
        except Exception as exc:
            logger.exception("inventory %s failed item=%s", update.action.value, update.item_name)
            self._invalidate()
            return MutationResult(success=False, message=f"Error updating inventory: {exc}")
        if result.success:
            self._commit(transactions)
        return result

    def add(self, item_name: str, quantity: int, unit: str = "", **fields: object) -> MutationResult:
        return self.apply({"item_name": item_name, "action": "add", "quantity": quantity, "unit": unit, **fields})

    def subtract(self, item_name: str, quantity: int, unit: str = "", reason: str = "") -> MutationResult:
        return self.apply(
            {"item_name": item_name, "action": "subtract", "quantity": quantity, "unit": unit, "reason": reason}
        )

    def update(self, item_name: str, **fields: object) -> MutationResult:
        return self.apply({"item_name": item_name, "action": "update", **fields})

    def batch_import(self, data: str) -> BatchImportResult:
        """Purpose: Add many items from CSV-style lines.
        Inputs/Outputs: Input is text with one "name, quantity, unit[, location, notes,
            min stock]" line per item; output is per-line results and a summary.
        Side Effects / State: Appends or updates rows; audits each committed line and
            clears the cache once at the end.
        Dependencies: Reuses _add so imports follow the same merge-by-name rule.
        Failure Modes: Short or invalid lines fail individually without stopping the
            batch.
        If Removed: Seasonal stock must be keyed in one item at a time.
        Testing Notes: Mix a good line, a short line, and an existing item.
        """
        # Process each non-blank line independently.
        lines = [line for line in (data or "").splitlines() if line.strip()]
        results: List[BatchLineResult] = []
        committed: List[Transaction] = []
        for line in lines:
            parts = [part.strip() for part in line.split(",")]
            if len(parts) < 3:
                results.append(
                    BatchLineResult(
                        line=line, success=False, message="Invalid format. Need at least: Item Name, Quantity, Unit"
                    )
                )
                continue
            try:
                update = InventoryUpdate(
                    item_name=parts[0],
                    action=InventoryAction.ADD,
                    quantity=parse_int(parts[1], 0),
                    unit=parts[2],
                    location=_part(parts, 3) or None,
                    notes=_part(parts, 4),
                    min_stock=parse_int(_part(parts, 5), self._default_min_stock),
                )
            except ValidationError as exc:
                results.append(BatchLineResult(line=line, success=False, message=validation_message(exc)))
                continue
            try:
                result, transactions = self._add(update, self.catalog())
            except Exception as exc:
                logger.exception("batch import line failed line=%s", line)
                self._invalidate()
                results.append(BatchLineResult(line=line, success=False, message=f"Error: {exc}"))
                continue
            committed.extend(transactions)
            results.append(BatchLineResult(line=line, success=result.success, message=result.message))

        if committed:
            self._commit(committed)
        succeeded = sum(1 for result in results if result.success)
        return BatchImportResult(
            success=True,
            results=results,
            summary=f"Processed {len(results)} items: {succeeded} successful, {len(results) - succeeded} failed",
        )

    def find_duplicates(self) -> List[DuplicatePair]:
        """Flag every pair of catalog names whose similarity beats the threshold."""
        return find_duplicates(self.catalog(), self._duplicate_threshold)

    def merge(self, name_a: str, name_b: str, keep_first: bool = True) -> MutationResult:
        """Purpose: Fold one duplicate row into another, summing quantities.
        Inputs/Outputs: Inputs are both names and which one survives; output is a
            MutationResult.
        Side Effects / State: Writes the summed quantity onto the kept row, deletes the
            other row, audits a MERGE and clears the cache.
        Dependencies: Reloads the catalog so stale names are detected.
        Failure Modes: Either name missing (deleted or renamed since detection) or
            both names resolving to the same row returns a failure. A store error
            rolls the kept quantity back and clears the cache.
        If Removed: Duplicates can be found but never resolved.
        Testing Notes: Merge 10 + 3 and verify one row of 13 remains.
        """
        # Resolve both rows against the current table state.
        try:
            catalog = self.catalog()
            first = _locate(catalog, name_a)
            second = _locate(catalog, name_b)
            if first is None or second is None:
                return MutationResult(success=False, message="Could not find one or both items")
            if first.row == second.row:
                return MutationResult(success=False, message="Cannot merge an item with itself")

            keep, drop = (first, second) if keep_first else (second, first)
            total = first.item.quantity + second.item.quantity
            previous = self._write_cells(keep.row, {QUANTITY_COL: total})
            try:
                self._store.delete_row(self._table, drop.row)
            except Exception:
                # Both rows still exist; restore the kept quantity.
                self._restore_cells(keep.row, previous)
                raise
        except Exception as exc:
            logger.exception("merge failed a=%s b=%s", name_a, name_b)
            self._invalidate()
            return MutationResult(success=False, message=f"Error merging items: {exc}")

        self._commit(
            [
                Transaction(
                    action="MERGE",
                    item=keep.item.name,
                    quantity=total,
                    unit=keep.item.unit,
                    new_total=total,
                    notes=f'Merged "{first.item.name}" and "{second.item.name}"',
                )
            ]
        )
        return MutationResult(success=True, message=f"Merged items successfully. Total quantity: {total}")

    def _add(self, update: InventoryUpdate, catalog: InventoryCatalog) -> Outcome:
        entry = catalog.find(update.item_name)
        if entry is not None:
            # Existing item: bump quantity and overwrite location/notes when given.
            unit = update.unit or entry.item.unit
            new_total = entry.item.quantity + update.quantity
            values: Dict[int, object] = {QUANTITY_COL: new_total}
            if update.location:
                values[LOCATION_COL] = update.location
            if update.notes:
                values[NOTES_COL] = update.notes
            self._write_cells(entry.row, values)
            transaction = Transaction(
                action="ADD",
                item=entry.item.name,
                quantity=update.quantity,
                unit=unit,
                new_total=new_total,
                notes=f"Added {update.quantity} {unit}",
            )
            message = f"Added {update.quantity} {unit} of {entry.item.name}. New total: {new_total} {unit}"
            return MutationResult(success=True, message=message), [transaction]

        item = InventoryItem(
            name=update.item_name,
            quantity=update.quantity,
            unit=update.unit,
            location=update.location or DEFAULT_LOCATION,
            notes=update.notes or "",
            min_stock=update.min_stock if update.min_stock is not None else self._default_min_stock,
        )
        self._store.append_row(self._table, item.to_row())
        transaction = Transaction(
            action="NEW",
            item=update.item_name,
            quantity=update.quantity,
            unit=update.unit,
            new_total=update.quantity,
            notes="New item added",
        )
        message = f"Added new item: {update.item_name} ({update.quantity} {update.unit})"
        return MutationResult(success=True, message=message), [transaction]

    def _subtract(self, update: InventoryUpdate, catalog: InventoryCatalog) -> Outcome:
        entry = catalog.find(update.item_name)
        if entry is None:
            return _not_found(update.item_name), []
        unit = update.unit or entry.item.unit
        current = entry.item.quantity
        new_total = current - update.quantity
        if new_total < 0:
            message = f"Cannot remove {update.quantity} {unit}. Only {current} {unit} available."
            return MutationResult(success=False, message=message), []

        self._store.write_cell(self._table, entry.row, QUANTITY_COL, new_total)
        transaction = Transaction(
            action="REMOVE",
            item=entry.item.name,
            quantity=update.quantity,
            unit=unit,
            new_total=new_total,
            notes=f"Reason: {update.reason or 'not given'}",
        )
        message = f"Removed {update.quantity} {unit} of {entry.item.name}. Remaining: {new_total} {unit}"
        return MutationResult(success=True, message=message), [transaction]

    def _update_info(self, update: InventoryUpdate, catalog: InventoryCatalog) -> Outcome:
        entry = catalog.find(update.item_name)
        if entry is None:
            return _not_found(update.item_name), []

        changes: List[Tuple[int, object, str]] = []
        if update.location:
            changes.append((LOCATION_COL, update.location, f'location to "{update.location}"'))
        if update.notes:
            changes.append((NOTES_COL, update.notes, f'notes to "{update.notes}"'))
        if update.min_stock is not None:
            changes.append((MIN_STOCK_COL, update.min_stock, f"minimum stock to {update.min_stock}"))
        if not changes:
            message = "No updates provided. Please enter location, notes, or minimum stock to update."
            return MutationResult(success=False, message=message), []

        self._write_cells(entry.row, {col: value for col, value, _ in changes})
        summary = " and ".join(description for _, _, description in changes)
        transaction = Transaction(
            action="UPDATE",
            item=entry.item.name,
            quantity=entry.item.quantity,
            unit=entry.item.unit,
            new_total=entry.item.quantity,
            notes=f"Updated {summary}",
        )
        return MutationResult(success=True, message=f"Updated {entry.item.name}: {summary}"), [transaction]

    def _write_cells(self, row: int, values: Dict[int, object]) -> Dict[int, object]:
        """Purpose: Write several cells of one row as a unit.
        Inputs/Outputs: Inputs are the 1-indexed row and a column-to-value map; output
            is the previous value of every written column.
        Side Effects / State: Writes the store; on failure restores the cells already
            written before re-raising.
        Dependencies: TabularStore.read_all_rows and write_cell.
        Failure Modes: The original store error propagates after the rollback.
        If Removed: A failed second write leaves a half-applied row behind.
        Testing Notes: Fail the notes write and check the quantity is unchanged.
        """
        # Snapshot the row, then write column by column.
        current = self._store.read_all_rows(self._table)[row - 1]
        previous = {col: current[col - 1] if col <= len(current) else "" for col in values}
        written: Dict[int, object] = {}
        try:
            for col, value in values.items():
                self._store.write_cell(self._table, row, col, value)
                written[col] = previous[col]
        except Exception:
            self._restore_cells(row, written)
            raise
        return previous

    def _restore_cells(self, row: int, previous: Dict[int, object]) -> None:
        for col, value in previous.items():
            try:
                self._store.write_cell(self._table, row, col, value)
            except Exception:
                logger.exception("rollback failed table=%s row=%s col=%s", self._table, row, col)

    def _commit(self, transactions: List[Transaction]) -> None:
        for transaction in transactions:
            self._audit.record(transaction)
        self._invalidate()

    def _invalidate(self) -> None:
        # Every path that may have reached the store ends here.
        self._cache.clear_all()


def validation_message(exc: ValidationError) -> str:
    """Flatten pydantic errors into one human-readable line."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", ()))
        parts.append(f"{field}: {error.get('msg', 'invalid value')}" if field else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def _locate(catalog: InventoryCatalog, name: str) -> Optional[CatalogEntry]:
    # Exact name first so "Mulch" and "mulch" can be merged with each other.
    if not (name or "").strip():
        return None
    return catalog.find_exact(name) or catalog.find(name)


def _not_found(name: str) -> MutationResult:
    return MutationResult(success=False, message=f'Item "{name}" not found in inventory.')


def _part(parts: List[str], index: int) -> str:
    return parts[index] if index < len(parts) else ""
