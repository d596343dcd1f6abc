from datetime import date

from deeproots.catalog import InventoryCatalog, load_fleet
from deeproots.config import FLEET_TABLE, INVENTORY_HEADERS, INVENTORY_TABLE
from deeproots.reports import build_fleet_report, build_inventory_report, check_low_stock, parse_maintenance_date


def test_inventory_report_sections(store):
    report = build_inventory_report(InventoryCatalog.load(store, INVENTORY_TABLE))

    assert report.startswith("INVENTORY REPORT\n")
    assert "Total Items: 5" in report
    assert "Locations: 5" in report
    assert "CRITICAL - OUT OF STOCK:\n  - Topsoil: 0 yards (Min: 4)" in report
    assert "LOW STOCK ALERT:\n  - Boxwood - 3gal: 12 plants (Min: 20)\n  - Arborvittae: 3 plants (Min: 5)" in report
    assert "Bay 2 (1 items):\n  - Mulch - Red: 8 yards" in report


def test_empty_inventory_report():
    assert build_inventory_report(InventoryCatalog.from_rows([INVENTORY_HEADERS])) == "No inventory data found."


def test_fleet_report_due_window(store):
    report = build_fleet_report(load_fleet(store, FLEET_TABLE), today=date(2026, 1, 20))

    assert "Total Fleet Size: 2" in report
    assert "Active: 1" in report
    assert "In Maintenance: 1" in report
    assert "ACTIVE TRUCKS:\n  - Truck 1 (Ford F-150)" in report
    assert "IN MAINTENANCE:\n  - Truck 2 (Chevy Silverado)" in report
    assert "MAINTENANCE DUE (Next 30 Days):\n  - Truck 1: 02/01/2026" in report
    assert "Truck 2: 2026-06-01" not in report


def test_empty_fleet_report():
    assert build_fleet_report([]) == "No fleet data found."


def test_low_stock_sorted_by_percent(store):
    alerts = check_low_stock(InventoryCatalog.load(store, INVENTORY_TABLE))

    assert [alert.item for alert in alerts] == ["Topsoil", "Boxwood - 3gal", "Arborvittae"]
    topsoil = alerts[0]
    assert (topsoil.percent_of_min, topsoil.needs_ordering) == (0, True)
    assert (alerts[1].percent_of_min, alerts[1].needs_ordering) == (60, False)


def test_parse_maintenance_date_formats():
    assert parse_maintenance_date("02/01/2026") == date(2026, 2, 1)
    assert parse_maintenance_date("2026-02-01") == date(2026, 2, 1)
    assert parse_maintenance_date("next spring") is None
    assert parse_maintenance_date("") is None
