from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

INVENTORY_TABLE = "Inventory"
FLEET_TABLE = "Fleet"
KNOWLEDGE_TABLE = "Knowledge"
TRANSACTION_TABLE = "Transaction Log"

INVENTORY_HEADERS = ["Item Name", "Quantity", "Unit", "Location", "Notes", "Min Stock"]
FLEET_HEADERS = [
    "Truck Name/ID",
    "Model",
    "Year",
    "License Plate",
    "Status",
    "Last Maintenance",
    "Next Maintenance Due",
    "Notes",
]
KNOWLEDGE_HEADERS = ["Question", "Answer"]
TRANSACTION_HEADERS = ["Timestamp", "Action", "Item", "Quantity", "Unit", "New Total", "Notes"]


@dataclass(frozen=True)
class Settings:
    """Configuration container for data sources, the AI fallback, and tuned thresholds."""
    gemini_api_key: str
    gemini_model: str
    data_path: Path
    prompts_dir: Path
    cache_ttl_seconds: int
    fleet_enabled: bool
    inventory_table: str = INVENTORY_TABLE
    fleet_table: str = FLEET_TABLE
    knowledge_table: str = KNOWLEDGE_TABLE
    transaction_table: str = TRANSACTION_TABLE
    inventory_threshold: float = 30.0
    fleet_threshold: float = 30.0
    knowledge_threshold: float = 40.0
    duplicate_threshold: float = 0.8
    default_min_stock: int = 10

    @property
    def ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Non-numeric CACHE_TTL_SECONDS or threshold values raise ValueError.
    If Removed: The service cannot locate its data file or thresholds and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve the data file and prompt directory, then build Settings.
    data_path = os.getenv("DATA_PATH")
    if data_path:
        data_file = Path(data_path)
    else:
        data_file = (BASE_DIR / "data" / "store.json").resolve()

    prompts_dir = (BASE_DIR / "prompts").resolve()

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        data_path=data_file,
        prompts_dir=prompts_dir,
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "1200")),
        fleet_enabled=os.getenv("FLEET_ENABLED", "1").lower() not in ("0", "false", "no"),
        inventory_threshold=float(os.getenv("INVENTORY_THRESHOLD", "30")),
        fleet_threshold=float(os.getenv("FLEET_THRESHOLD", "30")),
        knowledge_threshold=float(os.getenv("KNOWLEDGE_THRESHOLD", "40")),
        duplicate_threshold=float(os.getenv("DUPLICATE_THRESHOLD", "0.8")),
        default_min_stock=int(os.getenv("DEFAULT_MIN_STOCK", "10")),
    )
