from __future__ import annotations

import logging

from .catalog import Transaction
from .config import TRANSACTION_HEADERS, TRANSACTION_TABLE
from .tabular_store import TabularStore

logger = logging.getLogger("deeproots.audit")


class TransactionLog:
    """Append-only audit sink for inventory mutations."""

    def __init__(self, store: TabularStore, table: str = TRANSACTION_TABLE) -> None:
        self._store = store
        self._table = table

    def record(self, transaction: Transaction) -> bool:
        """Purpose: Append one transaction row to the audit table.
        Inputs/Outputs: Input is a Transaction; output is True when the row was written.
        Side Effects / State: Creates the audit table with headers on first use.
        Dependencies: Uses TabularStore.ensure_table/append_row.
        Failure Modes: Store errors are logged and swallowed so the mutation that
            triggered the write still succeeds.
        If Removed: No history of adds, removals, or merges is kept.
        Testing Notes: Make the store raise and verify the mutation still succeeds.
        """
        # Fire-and-forget: audit failures never fail the caller.
        try:
            self._store.ensure_table(self._table, TRANSACTION_HEADERS)
            self._store.append_row(self._table, transaction.to_row())
        except Exception:
            logger.exception("audit write failed action=%s item=%s", transaction.action, transaction.item)
            return False
        logger.info(
            "audit action=%s item=%s quantity=%s new_total=%s",
            transaction.action,
            transaction.item,
            transaction.quantity,
            transaction.new_total,
        )
        return True
