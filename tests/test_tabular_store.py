import json

import pytest

from deeproots.config import INVENTORY_HEADERS, INVENTORY_TABLE
from deeproots.tabular_store import JsonTabularStore, MemoryTabularStore, RowIndexError, TableNotFoundError


def test_rows_are_one_indexed_with_header_first():
    store = MemoryTabularStore({INVENTORY_TABLE: [INVENTORY_HEADERS]})

    assert store.append_row(INVENTORY_TABLE, ["Hosta", 4]) == 2
    assert store.append_row(INVENTORY_TABLE, ["Fern", 6]) == 3
    store.write_cell(INVENTORY_TABLE, 2, 2, 5)
    store.delete_row(INVENTORY_TABLE, 2)

    assert store.read_all_rows(INVENTORY_TABLE) == [INVENTORY_HEADERS, ["Fern", 6]]


def test_write_cell_extends_short_rows():
    store = MemoryTabularStore({INVENTORY_TABLE: [INVENTORY_HEADERS, ["Hosta"]]})
    store.write_cell(INVENTORY_TABLE, 2, 6, 3)
    assert store.read_all_rows(INVENTORY_TABLE)[1] == ["Hosta", "", "", "", "", 3]


def test_header_row_and_missing_rows_are_rejected():
    store = MemoryTabularStore({INVENTORY_TABLE: [INVENTORY_HEADERS, ["Hosta", 4]]})
    with pytest.raises(RowIndexError):
        store.write_cell(INVENTORY_TABLE, 1, 1, "x")
    with pytest.raises(RowIndexError):
        store.delete_row(INVENTORY_TABLE, 3)
    with pytest.raises(TableNotFoundError):
        store.read_all_rows("Fleet")


def test_reads_are_copies():
    store = MemoryTabularStore({INVENTORY_TABLE: [INVENTORY_HEADERS, ["Hosta", 4]]})
    store.read_all_rows(INVENTORY_TABLE)[1][1] = 100
    assert store.read_all_rows(INVENTORY_TABLE)[1][1] == 4


def test_ensure_table_keeps_existing_rows():
    store = MemoryTabularStore({INVENTORY_TABLE: [INVENTORY_HEADERS, ["Hosta", 4]]})
    store.ensure_table(INVENTORY_TABLE, INVENTORY_HEADERS)
    store.ensure_table("Knowledge", ["Question", "Answer"])
    assert len(store.read_all_rows(INVENTORY_TABLE)) == 2
    assert store.read_all_rows("Knowledge") == [["Question", "Answer"]]


def test_json_store_persists_between_instances(tmp_path):
    path = tmp_path / "data" / "store.json"
    store = JsonTabularStore(path)
    store.create_table(INVENTORY_TABLE, INVENTORY_HEADERS)
    store.append_row(INVENTORY_TABLE, ["Hosta", 4, "plants", "Shade Bed", "", 10])

    reopened = JsonTabularStore(path)

    assert reopened.read_all_rows(INVENTORY_TABLE)[1] == ["Hosta", 4, "plants", "Shade Bed", "", 10]
    assert not path.with_suffix(".tmp").exists()
    assert json.loads(path.read_text(encoding="utf-8"))["tables"][INVENTORY_TABLE][0] == INVENTORY_HEADERS


def test_json_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonTabularStore(path)

    assert not store.has_table(INVENTORY_TABLE)
