from __future__ import annotations

import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from .audit import TransactionLog
from .cache import MemoryCacheStore, ResponseCache
from .catalog import load_fleet
from .config import (
    FLEET_HEADERS,
    INVENTORY_HEADERS,
    KNOWLEDGE_HEADERS,
    TRANSACTION_HEADERS,
    Settings,
    load_settings,
)
from .gemini_client import GeminiAssistant
from .inventory_service import InventoryService
from .models import (
    AskRequest,
    AskResponse,
    BatchImportRequest,
    BatchImportResult,
    InventoryUpdate,
    MergeRequest,
    MutationResult,
    ReportResponse,
)
from .orchestrator import Assistant, QueryOrchestrator
from .reports import build_fleet_report, build_inventory_report, check_low_stock
from .search import FleetSearch, InventorySearch, KnowledgeSearch
from .tabular_store import JsonTabularStore, TabularStore

BASE_DIR = Path(__file__).resolve().parent

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("deeproots").setLevel(log_level)
logger = logging.getLogger("deeproots.app")

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

FLEET_DISABLED_MESSAGE = "Fleet tracking is not configured."


def ensure_tables(store: TabularStore, settings: Settings) -> None:
    """Create any missing table with its header row."""
    store.ensure_table(settings.inventory_table, INVENTORY_HEADERS)
    store.ensure_table(settings.knowledge_table, KNOWLEDGE_HEADERS)
    store.ensure_table(settings.transaction_table, TRANSACTION_HEADERS)
    if settings.fleet_enabled:
        store.ensure_table(settings.fleet_table, FLEET_HEADERS)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TabularStore] = None,
    cache: Optional[ResponseCache] = None,
    assistant: Optional[Assistant] = None,
) -> FastAPI:
    """Purpose: Build the FastAPI app and wire every service to shared collaborators.
    Inputs/Outputs: Optional settings, store, cache, and assistant overrides; returns
        a FastAPI application.
    Side Effects / State: Creates missing tables in the store; may configure the
        Gemini SDK when an API key is present.
    Dependencies: Settings, JsonTabularStore, ResponseCache, resolvers, and services.
    Failure Modes: Store IO errors while creating tables propagate at startup.
    If Removed: Nothing exposes resolve, mutations, or reports over HTTP.
    Testing Notes: Pass a MemoryTabularStore and a stub assistant.
    """
    # Fill in collaborators that were not injected.
    settings = settings or load_settings()
    store = store if store is not None else JsonTabularStore(settings.data_path)
    cache = cache if cache is not None else ResponseCache(MemoryCacheStore(), settings.cache_ttl_seconds)
    if assistant is None and settings.ai_enabled:
        assistant = GeminiAssistant(settings)
    ensure_tables(store, settings)

    inventory_search = InventorySearch(
        store,
        cache,
        settings.inventory_table,
        threshold=settings.inventory_threshold,
        default_min_stock=settings.default_min_stock,
    )
    fleet_search = (
        FleetSearch(store, cache, settings.fleet_table, settings.fleet_threshold) if settings.fleet_enabled else None
    )
    knowledge_search = KnowledgeSearch(store, cache, settings.knowledge_table, settings.knowledge_threshold)
    orchestrator = QueryOrchestrator(inventory_search, knowledge_search, fleet=fleet_search, assistant=assistant)
    inventory = InventoryService(
        store,
        cache,
        TransactionLog(store, settings.transaction_table),
        table=settings.inventory_table,
        default_min_stock=settings.default_min_stock,
        duplicate_threshold=settings.duplicate_threshold,
    )

    app = FastAPI(title="Deep Roots Operations Assistant")

    @app.post("/api/ask", response_model=AskResponse)
    def ask(request: AskRequest) -> AskResponse:
        """Purpose: Answer a free-text operations question.
        Inputs/Outputs: Input is AskRequest; output is AskResponse with answer and source.
        Side Effects / State: Resolvers may populate the answer cache.
        Dependencies: QueryOrchestrator.
        Failure Modes: None surface; the orchestrator always answers.
        If Removed: The chat UI cannot query inventory, fleet, or knowledge.
        Testing Notes: Post a known item name and check source=inventory.
        """
        # Delegate to the tiered resolver.
        return orchestrator.resolve(request.query)

    @app.post("/api/inventory/update", response_model=MutationResult)
    def update_inventory(update: InventoryUpdate) -> MutationResult:
        return inventory.apply(update)

    @app.post("/api/inventory/batch", response_model=BatchImportResult)
    def batch_import(request: BatchImportRequest) -> BatchImportResult:
        return inventory.batch_import(request.data)

    @app.get("/api/inventory/report", response_model=ReportResponse)
    def inventory_report() -> ReportResponse:
        return ReportResponse(report=build_inventory_report(inventory.catalog()))

    @app.get("/api/inventory/low-stock")
    def low_stock() -> List[dict]:
        return [asdict(alert) for alert in check_low_stock(inventory.catalog())]

    @app.get("/api/fleet/report", response_model=ReportResponse)
    def fleet_report() -> ReportResponse:
        if not settings.fleet_enabled:
            return ReportResponse(report=FLEET_DISABLED_MESSAGE)
        return ReportResponse(report=build_fleet_report(load_fleet(store, settings.fleet_table)))

    @app.get("/api/inventory/duplicates")
    def duplicates() -> List[dict]:
        """Purpose: List likely duplicate item names for review.
        Inputs/Outputs: No inputs; returns pairs with both items' details and similarity.
        Side Effects / State: None.
        Dependencies: InventoryService.find_duplicates.
        Failure Modes: Store errors propagate as 500 errors.
        If Removed: Duplicates can only be found by eye.
        Testing Notes: Seed "Arborvitae" and "Arborvittae" and expect one pair.
        """
        # Serialize dataclass pairs for the dashboard.
        return [asdict(pair) for pair in inventory.find_duplicates()]

    @app.post("/api/inventory/merge", response_model=MutationResult)
    def merge(request: MergeRequest) -> MutationResult:
        return inventory.merge(request.item_a, request.item_b, keep_first=request.keep_first)

    @app.post("/api/cache/clear", response_model=MutationResult)
    def clear_cache() -> MutationResult:
        cleared = cache.clear_all()
        return MutationResult(success=cleared, message="Cache cleared" if cleared else "Cache clear failed")

    logger.info(
        "app ready data=%s fleet=%s ai=%s",
        settings.data_path,
        settings.fleet_enabled,
        assistant is not None,
    )
    return app


app = create_app()
