"""Plain-text inventory and fleet reports plus the low-stock check."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .catalog import FleetRecord, InventoryCatalog

MAINTENANCE_WINDOW_DAYS = 30
REORDER_FRACTION = 0.5
_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%m/%d/%y", "%Y-%m-%dT%H:%M:%S")


@dataclass
class LowStockAlert:
    item: str
    quantity: int
    unit: str
    min_stock: int
    percent_of_min: int
    needs_ordering: bool


def build_inventory_report(catalog: InventoryCatalog) -> str:
    """Purpose: Render the inventory summary shown on the dashboard.
    Inputs/Outputs: Input is the catalog; output is a multi-line report string.
    Side Effects / State: None.
    Dependencies: InventoryItem.min_stock drives the low/critical sections.
    Failure Modes: An empty catalog returns "No inventory data found.".
    If Removed: Managers lose the at-a-glance stock view.
    Testing Notes: Quantity 0 lands in CRITICAL, below-minimum in LOW STOCK.
    """
    # Bucket items by stock level and by location in first-seen order.
    if not len(catalog):
        return "No inventory data found."

    by_location: Dict[str, List[str]] = {}
    critical: List[str] = []
    low: List[str] = []
    for item in catalog.items:
        line = f"{item.name}: {item.quantity} {item.unit}".rstrip()
        if item.quantity <= 0:
            critical.append(f"{line} (Min: {item.min_stock})")
        elif item.quantity < item.min_stock:
            low.append(f"{line} (Min: {item.min_stock})")
        by_location.setdefault(item.location, []).append(line)

    lines = ["INVENTORY REPORT", "================", ""]
    lines.append(f"Total Items: {len(catalog)}")
    lines.append(f"Locations: {len(by_location)}")
    lines.append("")
    if critical:
        lines.append("CRITICAL - OUT OF STOCK:")
        lines.extend(f"  - {entry}" for entry in critical)
        lines.append("")
    if low:
        lines.append("LOW STOCK ALERT:")
        lines.extend(f"  - {entry}" for entry in low)
        lines.append("")
    lines.append("BY LOCATION:")
    for location, entries in by_location.items():
        lines.append("")
        lines.append(f"{location} ({len(entries)} items):")
        lines.extend(f"  - {entry}" for entry in entries)
    return "\n".join(lines) + "\n"


def build_fleet_report(records: Sequence[FleetRecord], today: Optional[date] = None) -> str:
    """Purpose: Render fleet status with maintenance due in the next 30 days.
    Inputs/Outputs: Inputs are fleet records and an optional reference date;
        output is a multi-line report.
    Side Effects / State: None.
    Dependencies: Uses parse_maintenance_date for the due-date section.
    Failure Modes: Unparseable dates are skipped; no records returns
        "No fleet data found.".
    If Removed: Dispatch cannot see which trucks are available.
    Testing Notes: Pass a fixed today and a date 10 days later.
    """
    # Status is interpreted by substring, the due window by parsed date.
    if not records:
        return "No fleet data found."
    reference = today or date.today()
    horizon = reference + timedelta(days=MAINTENANCE_WINDOW_DAYS)

    active: List[str] = []
    in_maintenance: List[str] = []
    due: List[str] = []
    for record in records:
        status = record.status.lower()
        label = f"{record.name} ({record.model})"
        if "active" in status:
            active.append(label)
        elif "maintenance" in status:
            in_maintenance.append(label)
        due_date = parse_maintenance_date(record.next_maintenance)
        if due_date is not None and due_date <= horizon:
            due.append(f"{record.name}: {record.next_maintenance}")

    lines = ["FLEET REPORT", "============", ""]
    lines.append(f"Total Fleet Size: {len(records)}")
    lines.append(f"Active: {len(active)}")
    lines.append(f"In Maintenance: {len(in_maintenance)}")
    lines.append("")
    if active:
        lines.append("ACTIVE TRUCKS:")
        lines.extend(f"  - {entry}" for entry in active)
        lines.append("")
    if in_maintenance:
        lines.append("IN MAINTENANCE:")
        lines.extend(f"  - {entry}" for entry in in_maintenance)
        lines.append("")
    if due:
        lines.append(f"MAINTENANCE DUE (Next {MAINTENANCE_WINDOW_DAYS} Days):")
        lines.extend(f"  - {entry}" for entry in due)
    return "\n".join(lines) + "\n"


def check_low_stock(catalog: InventoryCatalog) -> List[LowStockAlert]:
    """Items below their minimum, lowest percentage of minimum first."""
    alerts: List[LowStockAlert] = []
    for item in catalog.items:
        if item.quantity >= item.min_stock:
            continue
        percent = round(item.quantity / item.min_stock * 100) if item.min_stock else 0
        alerts.append(
            LowStockAlert(
                item=item.name,
                quantity=item.quantity,
                unit=item.unit,
                min_stock=item.min_stock,
                percent_of_min=percent,
                needs_ordering=item.quantity < item.min_stock * REORDER_FRACTION,
            )
        )
    alerts.sort(key=lambda alert: alert.percent_of_min)
    return alerts


def parse_maintenance_date(value: str) -> Optional[date]:
    if not value:
        return None
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None
