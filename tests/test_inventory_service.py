from deeproots.audit import TransactionLog
from deeproots.config import INVENTORY_TABLE, TRANSACTION_TABLE
from deeproots.inventory_service import NOTES_COL, InventoryService
from deeproots.tabular_store import MemoryTabularStore


class AuditFailingStore(MemoryTabularStore):
    def append_row(self, table, values):
        if table == TRANSACTION_TABLE:
            raise RuntimeError("audit sheet unavailable")
        return super().append_row(table, values)


class LockedDeleteStore(MemoryTabularStore):
    def delete_row(self, table, row):
        raise RuntimeError("sheet locked")


class NotesFailingStore(MemoryTabularStore):
    def write_cell(self, table, row, col, value):
        if col == NOTES_COL:
            raise RuntimeError("notes column protected")
        return super().write_cell(table, row, col, value)


def audit_rows(store):
    return store.read_all_rows(TRANSACTION_TABLE)[1:]


def test_merge_sums_quantities_and_removes_other_row(store, inventory):
    result = inventory.merge("Arborvitae", "Arborvittae", keep_first=True)

    assert result.success
    assert result.message == "Merged items successfully. Total quantity: 13"
    catalog = inventory.catalog()
    assert catalog.find("Arborvitae").item.quantity == 13
    assert catalog.find("Arborvittae") is None
    assert len(catalog) == 4
    row = audit_rows(store)[-1]
    assert (row[1], row[2], row[3], row[5]) == ("MERGE", "Arborvitae", 13, 13)


def test_merge_can_keep_second(inventory):
    result = inventory.merge("Arborvitae", "Arborvittae", keep_first=False)

    assert result.success
    catalog = inventory.catalog()
    assert catalog.find("Arborvittae").item.quantity == 13
    assert catalog.find("Arborvitae") is None


def test_merge_missing_or_same_item_fails(store, inventory):
    before = store.snapshot()
    assert inventory.merge("Arborvitae", "Hosta").message == "Could not find one or both items"
    assert inventory.merge("Arborvitae", "arborvitae").message == "Cannot merge an item with itself"
    assert store.snapshot() == before


def test_over_subtraction_leaves_store_unchanged(store, inventory):
    before = store.snapshot()

    result = inventory.subtract("Mulch - Red", 10)

    assert not result.success
    assert result.message == "Cannot remove 10 yards. Only 8 yards available."
    assert store.snapshot() == before


def test_subtract_writes_remove_transaction(store, inventory):
    result = inventory.subtract("mulch - red", 3, reason="Smith job")

    assert result.success
    assert inventory.catalog().find("Mulch - Red").item.quantity == 5
    row = audit_rows(store)[-1]
    assert row[1] == "REMOVE"
    assert row[5] == 5
    assert row[6] == "Reason: Smith job"


def test_subtract_unknown_item(inventory):
    result = inventory.subtract("Hosta", 1)
    assert not result.success
    assert result.message == 'Item "Hosta" not found in inventory.'


def test_add_to_existing_item(store, inventory):
    result = inventory.add("mulch - red", 2)

    assert result.success
    assert result.message == "Added 2 yards of Mulch - Red. New total: 10 yards"
    assert inventory.catalog().find("Mulch - Red").item.quantity == 10
    assert audit_rows(store)[-1][1] == "ADD"


def test_add_new_item_uses_defaults(store, inventory):
    result = inventory.add("Hosta", 24, "plants")

    assert result.success
    assert store.read_all_rows(INVENTORY_TABLE)[-1] == ["Hosta", 24, "plants", "Unspecified", "", 10]
    assert audit_rows(store)[-1][1] == "NEW"


def test_update_info_allows_zero_min_stock(inventory):
    result = inventory.update("Topsoil", location="Bay 3", min_stock=0)

    assert result.success
    item = inventory.catalog().find("Topsoil").item
    assert item.location == "Bay 3"
    assert item.min_stock == 0


def test_update_without_fields_fails(inventory):
    result = inventory.update("Topsoil")
    assert not result.success
    assert result.message.startswith("No updates provided")


def test_invalid_payloads_are_failures(store, inventory):
    before = store.snapshot()
    assert inventory.apply({"itemName": "   ", "action": "add"}).message.startswith("Invalid request")
    assert not inventory.apply({"itemName": "Topsoil", "action": "delete"}).success
    assert not inventory.apply({"itemName": "Topsoil", "action": "add", "quantity": -2}).success
    assert store.snapshot() == before


def test_committed_mutation_clears_cache(cache, inventory):
    cache.set("inventory_mulch", "cached answer")

    inventory.subtract("Mulch - Red", 1)

    assert cache.get("inventory_mulch") is None


def test_failed_mutation_keeps_cache(cache, inventory):
    cache.set("inventory_mulch", "cached answer")

    inventory.subtract("Mulch - Red", 100)

    assert cache.get("inventory_mulch") == "cached answer"


def test_audit_failure_does_not_fail_mutation(cache, seeded_tables):
    store = AuditFailingStore(seeded_tables())
    service = InventoryService(store, cache, TransactionLog(store))

    result = service.add("Mulch - Red", 2)

    assert result.success
    assert service.catalog().find("Mulch - Red").item.quantity == 10


def test_batch_import(store, cache, inventory):
    cache.set("inventory_hosta", "stale")
    data = "Hosta, 24, plants, Shade Bed\nBad line\n\nMulch - Red, 2, yards"

    result = inventory.batch_import(data)

    assert result.summary == "Processed 3 items: 2 successful, 1 failed"
    assert [line.success for line in result.results] == [True, False, True]
    catalog = inventory.catalog()
    assert catalog.find("Hosta").item.location == "Shade Bed"
    assert catalog.find("Mulch - Red").item.quantity == 10
    assert cache.get("inventory_hosta") is None
    assert [row[1] for row in audit_rows(store)] == ["NEW", "ADD"]


def test_merge_clears_cache(cache, inventory):
    cache.set("inventory_arborvitae", "cached answer")

    inventory.merge("Arborvitae", "Arborvittae")

    assert cache.get("inventory_arborvitae") is None


def test_update_info_clears_cache(cache, inventory):
    cache.set("inventory_topsoil", "cached answer")

    inventory.update("Topsoil", location="Bay 3")

    assert cache.get("inventory_topsoil") is None


def test_merge_delete_failure_restores_quantity(cache, seeded_tables):
    store = LockedDeleteStore(seeded_tables())
    service = InventoryService(store, cache, TransactionLog(store))
    cache.set("inventory_arborvitae", "cached answer")

    result = service.merge("Arborvitae", "Arborvittae")

    assert not result.success
    assert result.message == "Error merging items: sheet locked"
    catalog = service.catalog()
    assert catalog.find("Arborvitae").item.quantity == 10
    assert catalog.find("Arborvittae").item.quantity == 3
    assert cache.get("inventory_arborvitae") is None
    assert audit_rows(store) == []


def test_add_failed_notes_write_restores_quantity(cache, seeded_tables):
    store = NotesFailingStore(seeded_tables())
    service = InventoryService(store, cache, TransactionLog(store))
    cache.set("inventory_mulch", "cached answer")

    result = service.add("Mulch - Red", 2, location="Bay 9", notes="Fresh load")

    assert not result.success
    assert result.message == "Error updating inventory: notes column protected"
    item = service.catalog().find("Mulch - Red").item
    assert item.quantity == 8
    assert item.location == "Bay 2"
    assert cache.get("inventory_mulch") is None
    assert audit_rows(store) == []
