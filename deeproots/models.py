from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnswerSource(str, Enum):
    """Which tier produced an answer."""
    TRUCKS = "trucks"
    INVENTORY = "inventory"
    KNOWLEDGE = "knowledge"
    AI = "ai"
    NONE = "none"
    ERROR = "error"


class InventoryAction(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    UPDATE = "update"


class AskRequest(BaseModel):
    """Request payload for the free-text question API."""
    query: str = ""


class AskResponse(BaseModel):
    """Formatted answer plus the tier that produced it."""
    answer: str
    source: AnswerSource


class InventoryUpdate(BaseModel):
    """Validated inventory mutation; camelCase keys from the dashboard are accepted."""
    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(alias="itemName", min_length=1)
    action: InventoryAction
    quantity: int = Field(default=0, ge=0)
    unit: str = ""
    location: Optional[str] = None
    notes: Optional[str] = None
    min_stock: Optional[int] = Field(default=None, alias="minStock", ge=0)
    reason: str = ""

    @field_validator("item_name")
    @classmethod
    def _strip_item_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Item name is required")
        return cleaned


class MutationResult(BaseModel):
    """Structured outcome of a mutating call; failures are values, not exceptions."""
    success: bool
    message: str


class BatchImportRequest(BaseModel):
    data: str


class BatchLineResult(BaseModel):
    line: str
    success: bool
    message: str


class BatchImportResult(BaseModel):
    success: bool
    results: List[BatchLineResult] = Field(default_factory=list)
    summary: str = ""


class MergeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_a: str = Field(alias="item1Name")
    item_b: str = Field(alias="item2Name")
    keep_first: bool = Field(default=True, alias="keepFirst")


class ReportResponse(BaseModel):
    report: str
