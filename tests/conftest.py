from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

# deeproots.app builds a module-level app on import; keep its JSON store out of the package.
os.environ.setdefault("DATA_PATH", str(Path(tempfile.mkdtemp(prefix="deeproots-test-")) / "store.json"))
os.environ.setdefault("GEMINI_API_KEY", "")

from deeproots.audit import TransactionLog  # noqa: E402
from deeproots.cache import MemoryCacheStore, ResponseCache  # noqa: E402
from deeproots.config import (  # noqa: E402
    FLEET_HEADERS,
    FLEET_TABLE,
    INVENTORY_HEADERS,
    INVENTORY_TABLE,
    KNOWLEDGE_HEADERS,
    KNOWLEDGE_TABLE,
    TRANSACTION_HEADERS,
    TRANSACTION_TABLE,
    Settings,
)
from deeproots.inventory_service import InventoryService  # noqa: E402
from deeproots.tabular_store import MemoryTabularStore  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubAssistant:
    def __init__(self, answer: str = "Mulch at 2-3 inches deep.", error: Exception = None) -> None:
        self.answer = answer
        self.error = error
        self.prompts = []

    def ask(self, prompt, context=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


INVENTORY_ROWS = [
    INVENTORY_HEADERS,
    ["Boxwood - 3gal", 12, "plants", "Nursery Row 4", "", 20],
    ["Mulch - Red", 8, "yards", "Bay 2", "Double shredded", 5],
    ["Arborvitae", 10, "plants", "Nursery Row 1", "", 5],
    ["Arborvittae", 3, "plants", "Nursery Row 2", "", 5],
    ["Topsoil", 0, "yards", "Bay 1", "", 4],
]

FLEET_ROWS = [
    FLEET_HEADERS,
    ["Truck 1", "Ford F-150", "2019", "ABC-123", "Active", "01/15/2026", "02/01/2026", "New tires"],
    ["Truck 2", "Chevy Silverado", "2017", "XYZ-789", "In Maintenance", "12/01/2025", "2026-06-01", ""],
]

KNOWLEDGE_ROWS = [
    KNOWLEDGE_HEADERS,
    ["How deep should mulch be applied", "Apply mulch 2 to 3 inches deep, kept off trunks."],
    ["When to prune boxwood", "Prune boxwood in late winter before new growth."],
]


def seeded_tables():
    return {
        INVENTORY_TABLE: [list(row) for row in INVENTORY_ROWS],
        FLEET_TABLE: [list(row) for row in FLEET_ROWS],
        KNOWLEDGE_TABLE: [list(row) for row in KNOWLEDGE_ROWS],
        TRANSACTION_TABLE: [list(TRANSACTION_HEADERS)],
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryTabularStore:
    return MemoryTabularStore(seeded_tables())


@pytest.fixture
def cache_store(clock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def cache(cache_store) -> ResponseCache:
    return ResponseCache(cache_store, ttl_seconds=1200)


@pytest.fixture
def inventory(store, cache) -> InventoryService:
    return InventoryService(store, cache, TransactionLog(store))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        gemini_api_key="",
        gemini_model="gemini-2.5-flash",
        data_path=tmp_path / "store.json",
        prompts_dir=tmp_path,
        cache_ttl_seconds=1200,
        fleet_enabled=True,
    )


@pytest.fixture
def stub_assistant():
    return StubAssistant


@pytest.fixture(name="seeded_tables")
def seeded_tables_fixture():
    return seeded_tables
