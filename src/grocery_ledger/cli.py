"""Command-line entry point and interactive menu for the grocery ledger.

The module is limited to argparse wiring, prompting for field values and
printing results. Every menu entry translates what the user typed into a call
on :mod:`grocery_ledger.core_logic`; operation errors are reported and the
menu is shown again, so no failure ends the session.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Iterable, Mapping, MutableMapping, Optional, Sequence, TextIO

from . import core_logic, errors, log
from .constants import MembershipType

EXIT_CHOICE = 13
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ShellSession:
    """Runtime context plus the text streams the menu talks through."""

    context: core_logic.RuntimeContext
    stdin: TextIO
    stdout: TextIO

    @property
    def ledger(self) -> core_logic.Ledger:
        return self.context.ledger


@dataclass(frozen=True)
class MenuEntry:
    """Describe one numbered menu entry and how it is executed.

    ``execute`` returns ``False`` to end the session.
    """

    number: int
    label: str
    execute: Callable[[ShellSession], bool]


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="grocery-ledger",
        description="Interactive inventory and customer-loyalty tracker for a grocery store.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to a config.ini found upwards from the working directory).",
    )
    parser.add_argument(
        "--load",
        type=Path,
        default=None,
        help="Store data file to load before the menu starts.",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write an .xlsx sales report to this path on exit (overrides ReportFile).",
    )
    return parser


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------


def emit(session: ShellSession, text: str = "") -> None:
    print(text, file=session.stdout)


def read_line(session: ShellSession, label: str) -> str:
    """Prompt with ``label`` and return the next input line without its newline.

    Raises:
        EOFError: When the input stream is exhausted.
    """
    session.stdout.write(label)
    session.stdout.flush()
    line = session.stdin.readline()
    if line == "":
        raise EOFError("End of input")
    return line.rstrip("\r\n")


def prompt_text(session: ShellSession, label: str, *, default: Optional[str] = None) -> str:
    value = read_line(session, label)
    if not value.strip() and default is not None:
        return default
    return value


def prompt_int(session: ShellSession, label: str, *, minimum: Optional[int] = None, default: Optional[int] = None) -> int:
    """Prompt for an integer, optionally bounded below.

    Raises:
        InputError: If the reply is not an integer or is below ``minimum``.
    """
    raw = read_line(session, label).strip()
    if not raw and default is not None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise errors.InputError(f"Expected a whole number, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise errors.InputError(f"Expected a number of at least {minimum}, got {value}")
    return value


def prompt_decimal(session: ShellSession, label: str) -> Decimal:
    """Prompt for a nonnegative monetary amount, rounded to cents.

    Raises:
        InputError: If the reply is not a finite, nonnegative number that fits
            in cents.
    """
    raw = read_line(session, label).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise errors.InputError(f"Expected an amount, got {raw!r}") from exc
    if not value.is_finite() or value < Decimal("0"):
        raise errors.InputError(f"Expected a nonnegative amount, got {raw!r}")
    try:
        return value.quantize(CENTS)
    except InvalidOperation as exc:
        raise errors.InputError(f"Amount is too large to price, got {raw!r}") from exc


def prompt_date(session: ShellSession, label: str) -> Optional[date]:
    """Prompt for an optional ISO date; a blank reply means no date.

    Raises:
        InputError: If the reply is not a ``YYYY-MM-DD`` date.
    """
    raw = read_line(session, label).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise errors.InputError(f"Expected a date as YYYY-MM-DD, got {raw!r}") from exc


def prompt_path(session: ShellSession, label: str, default: Optional[Path]) -> Path:
    """Prompt for a file path, offering the configured data file as default."""
    shown = f"{label} [{default}]: " if default is not None else f"{label}: "
    raw = read_line(session, shown).strip()
    if raw:
        return Path(raw)
    if default is not None:
        return default
    raise errors.InputError("A file name is required")


# ---------------------------------------------------------------------------
# Menu entries
# ---------------------------------------------------------------------------


def run_add_item(session: ShellSession) -> bool:
    name = prompt_text(session, "Enter Name: ")
    price = prompt_decimal(session, "Enter Price: ")
    category = prompt_text(session, "Enter Category: ")
    stock = prompt_int(session, "Enter Stock: ", minimum=0)
    expiration_date = prompt_date(session, "Enter Expiration Date (YYYY-MM-DD, leave blank if none): ")
    core_logic.add_item(session.ledger, name, price, category, stock, expiration_date)
    emit(session, "Item added successfully.")
    return True


def run_add_customer(session: ShellSession) -> bool:
    name = prompt_text(session, "Enter Name: ")
    customer_id = prompt_int(session, "Enter ID: ")
    membership_type = prompt_text(
        session,
        "Enter Membership Type (Regular/Premium): ",
        default=MembershipType.REGULAR.value,
    )
    core_logic.add_customer(session.ledger, name, customer_id, membership_type.strip())
    emit(session, "Customer added successfully.")
    return True


def run_purchase(session: ShellSession) -> bool:
    """Execute the purchase workflow and report discounts and expiry."""
    command = core_logic.PurchaseCommand(
        customer_id=prompt_int(session, "Enter Customer ID: "),
        item_name=prompt_text(session, "Enter Item Name: "),
        quantity=prompt_int(session, "Enter Quantity: ", minimum=1),
    )
    outcome = core_logic.record_purchase(session.ledger, command)
    if outcome.bulk_discount_applied:
        emit(session, "Applied 5% bulk purchase discount.")
    emit(session, f"Item purchased successfully. Total charged: ${outcome.sale.total:.2f}")
    if outcome.expired:
        emit(session, "Warning: This item is expired!")
    return True


def run_restock(session: ShellSession) -> bool:
    command = core_logic.RestockCommand(
        item_name=prompt_text(session, "Enter Item Name: "),
        quantity=prompt_int(session, "Enter Quantity to Restock: ", minimum=0),
    )
    core_logic.record_restock(session.ledger, command)
    emit(session, "Item restocked successfully.")
    return True


def run_display_items(session: ShellSession) -> bool:
    emit(session, "Grocery Items:")
    for item in core_logic.list_items(session.ledger):
        emit(session, item.describe())
    return True


def run_display_customers(session: ShellSession) -> bool:
    emit(session, "Customers:")
    for customer in core_logic.list_customers(session.ledger):
        emit(session, customer.describe())
    return True


def run_customer_purchases(session: ShellSession) -> bool:
    customer_id = prompt_int(session, "Enter Customer ID: ")
    customer, bill = core_logic.customer_bill(session.ledger, customer_id)
    emit(session, f"Purchases by {customer.name}:")
    if not bill.lines:
        emit(session, "No items purchased.")
        return True
    for line in bill.lines:
        emit(session, f"Item: {line.item_name}, Quantity: {line.quantity}, Subtotal: ${line.subtotal:.2f}")
    emit(
        session,
        f"Total Bill: ${bill.subtotal:.2f}, Discount: ${bill.discount:.2f}, "
        f"Final Bill: ${bill.final_total:.2f}, Loyalty Points: {bill.loyalty_points:.2f}",
    )
    return True


def run_save(session: ShellSession) -> bool:
    destination = prompt_path(session, "Enter filename to save data", session.context.settings.data_file)
    core_logic.save_ledger(session.ledger, destination)
    emit(session, f"Store data saved to {destination}")
    return True


def run_load(session: ShellSession) -> bool:
    source = prompt_path(session, "Enter filename to load data", session.context.settings.data_file)
    snapshot = core_logic.load_ledger(session.ledger, source)
    emit(
        session,
        f"Store data loaded from {source} ({len(snapshot.items)} items, {len(snapshot.customers)} customers)",
    )
    return True


def run_low_stock(session: ShellSession) -> bool:
    default = session.context.settings.low_stock_threshold
    threshold = prompt_int(session, f"Enter stock threshold [{default}]: ", default=default)
    emit(session, "Low Stock Alert:")
    found = False
    for item in core_logic.list_low_stock(session.ledger, threshold):
        emit(session, f"Item: {item.name}, Stock: {item.stock}")
        found = True
    if not found:
        emit(session, "No items below the stock threshold.")
    return True


def run_search(session: ShellSession) -> bool:
    query = prompt_text(session, "Enter search query (name/category): ")
    emit(session, "Search Results:")
    found = False
    for item in core_logic.search_items(session.ledger, query):
        emit(session, item.describe())
        found = True
    if not found:
        emit(session, "No matching items found.")
    return True


def run_sales_history(session: ShellSession) -> bool:
    emit(session, "Sales History:")
    sales = core_logic.list_sales(session.ledger)
    if not sales:
        emit(session, "No sales recorded.")
        return True
    for sale in sales:
        emit(session, sale.describe())
    summary = core_logic.calculate_sales_summary(session.ledger)
    emit(session, f"Sales: {summary.sales}, Units: {summary.units}, Revenue: ${summary.revenue:.2f}")
    return True


def run_exit(session: ShellSession) -> bool:
    emit(session, "Exiting...")
    return False


def build_menu() -> MutableMapping[int, MenuEntry]:
    """Build the numbered menu, keyed by selection number."""
    entries = [
        MenuEntry(1, "Add Item", run_add_item),
        MenuEntry(2, "Add Customer", run_add_customer),
        MenuEntry(3, "Purchase Item", run_purchase),
        MenuEntry(4, "Restock Item", run_restock),
        MenuEntry(5, "Display All Items", run_display_items),
        MenuEntry(6, "Display All Customers", run_display_customers),
        MenuEntry(7, "View Customer Purchases", run_customer_purchases),
        MenuEntry(8, "Save Data to File", run_save),
        MenuEntry(9, "Load Data from File", run_load),
        MenuEntry(10, "Check Low Stock", run_low_stock),
        MenuEntry(11, "Search Items", run_search),
        MenuEntry(12, "View Sales History", run_sales_history),
        MenuEntry(EXIT_CHOICE, "Exit", run_exit),
    ]
    return build_menu_table(entries)


def build_menu_table(entries: Iterable[MenuEntry]) -> MutableMapping[int, MenuEntry]:
    """Index menu entries by number, rejecting duplicates."""
    table: dict[int, MenuEntry] = {}
    for entry in entries:
        if entry.number in table:
            raise ValueError(f"Duplicate menu number: {entry.number}")
        table[entry.number] = entry
    return table


def resolve_choice(menu: Mapping[int, MenuEntry], raw: str) -> Optional[MenuEntry]:
    try:
        return menu.get(int(raw.strip()))
    except ValueError:
        return None


def print_menu(session: ShellSession, menu: Mapping[int, MenuEntry]) -> None:
    emit(session)
    emit(session, f"===== {session.context.settings.store_name} =====")
    for number in sorted(menu):
        emit(session, f"{number}. {menu[number].label}")


def report_error(session: ShellSession, entry: MenuEntry, error: Exception) -> None:
    log.info("Menu entry '%s' failed: %s", entry.label, error)
    emit(session, f"Error: {error}")


def run_menu(session: ShellSession, menu: Optional[Mapping[int, MenuEntry]] = None) -> None:
    """Loop over menu selections until Exit is chosen or input runs out."""
    menu = menu if menu is not None else build_menu()
    while True:
        print_menu(session, menu)
        try:
            raw = read_line(session, "Enter your choice: ")
        except EOFError:
            emit(session)
            emit(session, "Exiting...")
            return
        entry = resolve_choice(menu, raw)
        if entry is None:
            emit(session, "Invalid choice. Please try again.")
            continue
        try:
            keep_running = entry.execute(session)
        except EOFError:
            emit(session)
            emit(session, "Exiting...")
            return
        except (errors.LedgerError, OSError, ValueError, ArithmeticError) as error:
            report_error(session, entry, error)
            continue
        if not keep_running:
            return


def handle_cli_error(error: Exception) -> int:
    """Convert start-up or shutdown exceptions into exit codes."""
    if isinstance(error, errors.LedgerError):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """CLI entry point: load settings, run the menu, write the report."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        context = core_logic.load_runtime_context(args.config, preload=args.load)
    except (errors.LedgerError, OSError, KeyError, ValueError) as error:
        return handle_cli_error(error)

    session = ShellSession(
        context=context,
        stdin=stdin if stdin is not None else sys.stdin,
        stdout=stdout if stdout is not None else sys.stdout,
    )
    run_menu(session)

    report_path = args.report or context.settings.report_file
    if report_path is not None:
        try:
            written = core_logic.export_sales_report(context.ledger, report_path)
        except OSError as error:
            return handle_cli_error(error)
        emit(session, f"Sales report written to {written}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
