"""Integration tests describing end-to-end grocery ledger workflows.

These scenarios exercise the ledger, the text codec and the interactive shell
together, going through real files in a temporary directory.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from logging.handlers import RotatingFileHandler

import openpyxl

import grocery_ledger
from grocery_ledger import core_logic, data_manager

from conftest import FIXED_TODAY


def test_purchase_save_and_reload_cycle(ledger, tmp_path):
    """Walk through a stock, sale, save and reload cycle."""

    core_logic.add_item(ledger, "Milk", Decimal("2.50"), "Dairy", 20, date(2099, 1, 1))
    core_logic.add_item(ledger, "Rice", Decimal("1.20"), "Grains", 3)
    core_logic.add_customer(ledger, "Alice", 1, "Premium")

    outcome = core_logic.record_purchase(
        ledger, core_logic.PurchaseCommand(customer_id=1, item_name="Milk", quantity=12), today=FIXED_TODAY
    )
    assert outcome.sale.total == Decimal("28.50")

    data_file = tmp_path / "store.txt"
    core_logic.save_ledger(ledger, data_file)

    reloaded = core_logic.Ledger()
    core_logic.load_ledger(reloaded, data_file)

    assert [(i.name, i.price, i.category, i.stock, i.expiration_date) for i in reloaded.items] == [
        ("Milk", Decimal("2.50"), "Dairy", 8, date(2099, 1, 1)),
        ("Rice", Decimal("1.20"), "Grains", 3, None),
    ]
    alice = core_logic.find_customer_by_id(reloaded, 1)
    assert alice.loyalty_points == Decimal("0.30")
    assert alice.membership_type == "Premium"


def test_reload_restores_loyalty_points_without_touching_stock(ledger, tmp_path):
    """Loyalty points are assigned on load; no purchase is replayed against the catalog.

    The balance is not rebuilt by simulating a purchase of
    ``points / LOYALTY_RATE`` units; only the restored number is preserved.
    """

    core_logic.add_item(ledger, "Rice", Decimal("1.20"), "Grains", 3)
    customer = core_logic.add_customer(ledger, "Bob", 2)
    customer.loyalty_points = Decimal("7.25")
    data_file = tmp_path / "store.txt"
    core_logic.save_ledger(ledger, data_file)

    target = core_logic.Ledger()
    core_logic.load_ledger(target, data_file)

    assert target.items[0].stock == 3
    bob = core_logic.find_customer_by_id(target, 2)
    assert bob.loyalty_points == Decimal("7.25")
    assert bob.purchase_history == []
    assert target.sales_log == []


def test_loading_twice_appends_duplicates_and_first_match_wins(ledger, tmp_path):
    core_logic.add_item(ledger, "Rice", Decimal("1.20"), "Grains", 3)
    data_file = tmp_path / "store.txt"
    core_logic.save_ledger(ledger, data_file)

    core_logic.load_ledger(ledger, data_file)
    core_logic.record_restock(ledger, core_logic.RestockCommand(item_name="Rice", quantity=5))

    assert [item.stock for item in ledger.items] == [8, 3]


def test_interactive_session_end_to_end(tmp_path, run_shell):
    """Drive the shell through the documented milk scenario and persist the result."""

    data_file = tmp_path / "session.txt"
    report = tmp_path / "report.xlsx"
    lines = [
        "1", "Milk", "2.50", "Dairy", "20", "2099-01-01",
        "2", "Alice", "1", "Premium",
        "3", "1", "Milk", "12",
        "7", "1",
        "12",
        "8", str(data_file),
        "13",
    ]

    result = run_shell(lines, argv=["--report", str(report)])

    assert result.exit_code == 0
    assert "Applied 5% bulk purchase discount." in result.output
    assert "Item: Milk, Customer: Alice, Quantity: 12, Total: $28.50" in result.output
    assert "Total Bill: $30.00, Discount: $3.00, Final Bill: $27.00" in result.output
    assert data_file.read_text(encoding="utf-8").splitlines()[1] == "Milk|2.50|Dairy|8|2099-01-01"

    workbook = openpyxl.load_workbook(report)
    sales = list(workbook["SalesLog"].iter_rows(min_row=2, values_only=True))
    assert sales == [("Milk", "Alice", 12, 28.5)]


def test_shell_loads_configured_data_file_by_default(config_factory, run_shell):
    bundle = config_factory(store_name="Preloaded Grocery", threshold=10)
    data_manager.write_store_file(
        bundle.data_file,
        [data_manager.deserialize_item("Rice|1.20|Grains|3|")],
        [data_manager.deserialize_customer("Bob|2|Regular|1.5")],
    )

    result = run_shell(
        ["9", "", "10", "", "6", "13"],
        argv=["--config", str(bundle.config_path)],
    )

    assert result.exit_code == 0
    assert "===== Preloaded Grocery =====" in result.output
    assert "Item: Rice, Stock: 3" in result.output
    assert "Name: Bob, ID: 2, Membership Type: Regular, Loyalty Points: 1.50" in result.output


def test_package_logger_keeps_console_quiet_below_warnings():
    handlers = grocery_ledger.log.handlers
    console = [h for h in handlers if type(h) is logging.StreamHandler]
    files = [h for h in handlers if isinstance(h, RotatingFileHandler)]

    assert grocery_ledger.log.name == "grocery_ledger"
    assert [h.level for h in console] == [logging.WARNING]
    assert all(h.level == logging.INFO for h in files)
