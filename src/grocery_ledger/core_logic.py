"""Business logic layer for the grocery ledger.

This module owns the in-memory :class:`Ledger` (catalog, customer roster and
append-only sales log) and the operations the interactive shell calls into:
record lookups, the purchase workflow with its bulk discount, restocks,
catalog queries and reporting helpers. All disk access goes through
:mod:`grocery_ledger.data_manager`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from . import data_manager, log
from .constants import BULK_DISCOUNT, BULK_THRESHOLD, MembershipType
from .errors import NotFoundError
from .records import Bill, Customer, Item, SaleRecord


@dataclass
class Ledger:
    """In-memory store of items, customers and sales for one shop."""

    items: List[Item] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    sales_log: List[SaleRecord] = field(default_factory=list)


@dataclass(frozen=True)
class RuntimeContext:
    """Container for configuration and the ledger used by the shell."""

    settings: data_manager.ConfigSettings
    ledger: Ledger


@dataclass(frozen=True)
class PurchaseCommand:
    """User intent for buying an item on behalf of a customer."""

    customer_id: int
    item_name: str
    quantity: int


@dataclass(frozen=True)
class RestockCommand:
    """User intent for adding units to an item's stock."""

    item_name: str
    quantity: int


@dataclass(frozen=True)
class PurchaseOutcome:
    """Result of a completed purchase.

    ``expired`` is informational; expired items are still sold.
    """

    sale: SaleRecord
    item: Item
    customer: Customer
    bulk_discount_applied: bool
    expired: bool


@dataclass(frozen=True)
class SalesSummary:
    """Aggregate figures over the sales log."""

    sales: int
    units: int
    revenue: Decimal


class ItemQuery:
    """Lazy, restartable view over the catalog items matching a predicate.

    Each iteration rescans the catalog in order, so the view reflects stock
    changes made after it was created.
    """

    def __init__(self, items: List[Item], predicate: Callable[[Item], bool]) -> None:
        self._items = items
        self._predicate = predicate

    def __iter__(self) -> Iterator[Item]:
        return (item for item in self._items if self._predicate(item))


def load_runtime_context(config_path: Optional[Path] = None, *, preload: Optional[Path] = None) -> RuntimeContext:
    """Resolve settings and build an empty (or preloaded) ledger.

    An explicit ``config_path`` must exist. Without one, ``config.ini`` is
    searched upwards from the working directory and built-in defaults apply
    when none is found.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file.
        preload (Path | None): Optional store data file appended to the new
            ledger.

    Returns:
        RuntimeContext: Settings plus the ledger the shell operates on.

    Raises:
        FileNotFoundError: If an explicit configuration file is missing.
        KeyError: When mandatory configuration options are missing.
        LedgerIOError: If ``preload`` cannot be opened.
    """
    try:
        located_config = data_manager.find_config_file(config_path)
    except FileNotFoundError:
        log.info("No %s found; using built-in defaults", data_manager.CONFIG_FILE_NAME)
        settings = data_manager.ConfigSettings()
    else:
        resolved_config = Path(located_config).expanduser().resolve()
        parser = data_manager.read_config(resolved_config)
        settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
        log.info("Loaded settings from '%s'", resolved_config)

    context = RuntimeContext(settings=settings, ledger=Ledger())
    if preload is not None:
        load_ledger(context.ledger, preload)
    return context


def require_nonnegative_money(amount: Decimal) -> None:
    """Validate that a monetary value is nonnegative.

    Raises:
        ValueError: If ``amount`` is less than zero.
    """
    if amount < Decimal("0"):
        log.error("Monetary value validation failed: %s", amount)
        raise ValueError("Amount must be zero or positive")


def add_item(
    ledger: Ledger,
    name: str,
    price: Decimal,
    category: str,
    stock: int,
    expiration_date: Optional[date] = None,
) -> Item:
    """Append a new item to the catalog.

    Duplicate names are accepted; lookups return the first match.

    Raises:
        ValueError: If ``price`` is negative.
    """
    require_nonnegative_money(price)
    item = Item(name=name, price=price, category=category, stock=stock, expiration_date=expiration_date)
    ledger.items.append(item)
    log.info("Added item '%s' (price=%s, stock=%s)", name, price, stock)
    return item


def add_customer(
    ledger: Ledger,
    name: str,
    customer_id: int,
    membership_type: str = MembershipType.REGULAR.value,
) -> Customer:
    """Append a new customer to the roster; duplicate ids are accepted."""
    customer = Customer(name=name, customer_id=customer_id, membership_type=membership_type)
    ledger.customers.append(customer)
    log.info("Added customer '%s' (id=%s, membership=%s)", name, customer_id, membership_type)
    return customer


def find_item_index(ledger: Ledger, name: str) -> int:
    """Return the catalog index of the first item named ``name``.

    Raises:
        NotFoundError: If no item carries that name.
    """
    for index, item in enumerate(ledger.items):
        if item.name == name:
            return index
    log.warning("Item lookup failed for name '%s'", name)
    raise NotFoundError(f"Item not found: {name}")


def find_item_by_name(ledger: Ledger, name: str) -> Item:
    """Resolve the first item named ``name``.

    Raises:
        NotFoundError: If no item carries that name.
    """
    return ledger.items[find_item_index(ledger, name)]


def find_customer_by_id(ledger: Ledger, customer_id: int) -> Customer:
    """Resolve the first customer whose id equals ``customer_id``.

    Raises:
        NotFoundError: If the roster holds no such customer.
    """
    for customer in ledger.customers:
        if customer.customer_id == customer_id:
            return customer
    log.warning("Customer lookup failed for id '%s'", customer_id)
    raise NotFoundError(f"Customer not found: {customer_id}")


def calculate_sale_total(price: Decimal, quantity: int) -> Tuple[Decimal, bool]:
    """Return the amount charged for ``quantity`` units and whether bulk pricing applied.

    Purchases of ``BULK_THRESHOLD`` units or more are charged 5% less than the
    gross ``price * quantity``.
    """
    total = price * quantity
    if quantity >= BULK_THRESHOLD:
        return total * (Decimal("1") - BULK_DISCOUNT), True
    return total, False


def record_purchase(ledger: Ledger, command: PurchaseCommand, *, today: Optional[date] = None) -> PurchaseOutcome:
    """Sell an item to a customer and append the sale to the log.

    Both lookups run before anything is mutated, and the stock check inside
    :meth:`Customer.record_purchase` runs before the sale is logged, so a
    failed purchase leaves the ledger unchanged. The sales log records the
    bulk-adjusted total while the customer's history keeps the raw quantity,
    so :meth:`Customer.compute_bill` never sees the bulk discount.

    Args:
        ledger (Ledger): Ledger holding the catalog, roster and sales log.
        command (PurchaseCommand): Structured purchase intent.
        today (date | None): Date used for the expiry check; defaults to the
            local calendar date.

    Returns:
        PurchaseOutcome: The logged sale plus bulk and expiry flags.

    Raises:
        NotFoundError: If the customer or the item is unknown.
        OutOfStockError: If the item holds fewer units than requested.
    """
    customer = find_customer_by_id(ledger, command.customer_id)
    item_index = find_item_index(ledger, command.item_name)
    item = ledger.items[item_index]

    total, bulk_applied = calculate_sale_total(item.price, command.quantity)
    customer.record_purchase(ledger.items, item_index, command.quantity)

    sale = SaleRecord(
        item_name=item.name,
        customer_name=customer.name,
        quantity=command.quantity,
        total=total,
    )
    ledger.sales_log.append(sale)
    expired = item.is_expired(today)
    log.info(
        "Recorded sale of %s x '%s' to customer %s (total=%s, bulk=%s)",
        command.quantity,
        item.name,
        customer.customer_id,
        total,
        bulk_applied,
    )
    if expired:
        log.warning("Sold expired item '%s' (expired %s)", item.name, item.expiration_date)
    return PurchaseOutcome(
        sale=sale,
        item=item,
        customer=customer,
        bulk_discount_applied=bulk_applied,
        expired=expired,
    )


def record_restock(ledger: Ledger, command: RestockCommand) -> Item:
    """Add units to the first item named ``command.item_name``.

    Raises:
        NotFoundError: If the item is unknown.
    """
    item = find_item_by_name(ledger, command.item_name)
    item.restock(command.quantity)
    log.info("Restocked '%s' by %s (stock=%s)", item.name, command.quantity, item.stock)
    return item


def list_low_stock(ledger: Ledger, threshold: int) -> ItemQuery:
    """Return the items whose stock is strictly below ``threshold``."""
    return ItemQuery(ledger.items, lambda item: item.stock < threshold)


def search_items(ledger: Ledger, query: str) -> ItemQuery:
    """Return the items whose name or category contains ``query`` (case-sensitive)."""
    return ItemQuery(ledger.items, lambda item: query in item.name or query in item.category)


def customer_bill(ledger: Ledger, customer_id: int) -> Tuple[Customer, Bill]:
    """Look up a customer and price their purchase history.

    Raises:
        NotFoundError: If the customer is unknown.
    """
    customer = find_customer_by_id(ledger, customer_id)
    return customer, customer.compute_bill(ledger.items)


def list_items(ledger: Ledger) -> List[Item]:
    return list(ledger.items)


def list_customers(ledger: Ledger) -> List[Customer]:
    return list(ledger.customers)


def list_sales(ledger: Ledger) -> List[SaleRecord]:
    """Snapshot of the sales log in chronological order."""
    return list(ledger.sales_log)


def calculate_sales_summary(ledger: Ledger) -> SalesSummary:
    """Count sales and sum the units sold and the amounts charged."""
    units = 0
    revenue = Decimal("0")
    for sale in ledger.sales_log:
        units += sale.quantity
        revenue += sale.total
    log.debug("Calculated sales summary: sales=%d units=%d revenue=%s", len(ledger.sales_log), units, revenue)
    return SalesSummary(sales=len(ledger.sales_log), units=units, revenue=revenue)


def save_ledger(ledger: Ledger, destination: Path) -> None:
    """Persist the catalog and roster to a store data file.

    Purchase histories and the sales log are not part of the file format.

    Raises:
        LedgerIOError: If the destination cannot be opened.
    """
    data_manager.write_store_file(destination, ledger.items, ledger.customers)
    log.info(
        "Saved %d items and %d customers to '%s'",
        len(ledger.items),
        len(ledger.customers),
        destination,
    )


def load_ledger(ledger: Ledger, source: Path) -> data_manager.StoreSnapshot:
    """Append the records of a store data file to the ledger.

    Existing records are kept. Loyalty points come straight from the file;
    no purchase is replayed and no stock changes.

    Returns:
        data_manager.StoreSnapshot: The records that were appended.

    Raises:
        LedgerIOError: If the source cannot be opened.
        MalformedRecordError: If a line cannot be decoded; the ledger is left
            unchanged in that case.
    """
    snapshot = data_manager.read_store_file(source)
    ledger.items.extend(snapshot.items)
    ledger.customers.extend(snapshot.customers)
    log.info(
        "Loaded %d items and %d customers from '%s'",
        len(snapshot.items),
        len(snapshot.customers),
        source,
    )
    return snapshot


def export_sales_report(ledger: Ledger, destination: Path, *, today: Optional[date] = None) -> Path:
    """Write the session's items, customers and sales log to an ``.xlsx`` report."""
    written = data_manager.export_report(
        destination,
        items=ledger.items,
        customers=ledger.customers,
        sales=ledger.sales_log,
        today=today,
    )
    log.info("Exported sales report to '%s'", written)
    return written
