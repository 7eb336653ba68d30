"""Record types held by the store ledger.

Items and customers are mutable dataclasses: purchases decrement an item's
stock in place and accrue loyalty points on the customer. A customer's
purchase history never copies an item; each line stores the item's index in
the ledger catalog, which is stable because the catalog is append-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from . import log
from .constants import LOYALTY_RATE, PREMIUM_DISCOUNT, REGULAR_DISCOUNT, MembershipType
from .errors import OutOfStockError


def _resolve_today(candidate: Optional[date]) -> date:
    """Return ``candidate`` when provided, otherwise the local calendar date."""

    return candidate if candidate is not None else date.today()


@dataclass
class Item:
    """Catalog entry for a product sold by the store."""

    name: str
    price: Decimal
    category: str
    stock: int
    expiration_date: Optional[date] = None

    def purchase(self, quantity: int) -> None:
        """Remove ``quantity`` units from stock.

        Args:
            quantity (int): Number of units requested by the buyer.

        Raises:
            OutOfStockError: If ``quantity`` exceeds the units on hand. Stock
                is left untouched; there is no partial fulfilment.
        """
        if quantity > self.stock:
            log.warning(
                "Insufficient stock for '%s': requested %s, available %s",
                self.name,
                quantity,
                self.stock,
            )
            raise OutOfStockError(
                f"Insufficient stock for '{self.name}': requested {quantity}, available {self.stock}"
            )
        self.stock -= quantity

    def restock(self, quantity: int) -> None:
        """Add ``quantity`` units to stock without any bound checks."""
        self.stock += quantity

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Return ``True`` when the expiration date lies strictly before ``today``.

        Items without an expiration date are non-perishable and never expire.
        """
        if self.expiration_date is None:
            return False
        return self.expiration_date < _resolve_today(today)

    def describe(self, today: Optional[date] = None) -> str:
        text = (
            f"Name: {self.name}, Price: ${self.price:.2f}, "
            f"Category: {self.category}, Stock: {self.stock}"
        )
        if self.expiration_date is not None:
            text += f", Expiration Date: {self.expiration_date.isoformat()}"
        if self.is_expired(today):
            text += " (EXPIRED)"
        return text


@dataclass(frozen=True)
class PurchaseLine:
    """One entry of a customer's purchase history."""

    item_index: int
    quantity: int


@dataclass(frozen=True)
class BillLine:
    """Priced view of a purchase line, as shown on the customer's bill."""

    item_name: str
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class Bill:
    """Totals computed from a customer's purchase history."""

    subtotal: Decimal
    discount: Decimal
    final_total: Decimal
    loyalty_points: Decimal
    lines: Tuple[BillLine, ...] = ()


@dataclass
class Customer:
    """Store customer with membership tier, loyalty balance and history."""

    name: str
    customer_id: int
    membership_type: str = MembershipType.REGULAR.value
    loyalty_points: Decimal = Decimal("0")
    purchase_history: List[PurchaseLine] = field(default_factory=list)

    @property
    def is_premium(self) -> bool:
        return self.membership_type == MembershipType.PREMIUM.value

    @property
    def discount_rate(self) -> Decimal:
        return PREMIUM_DISCOUNT if self.is_premium else REGULAR_DISCOUNT

    def record_purchase(self, catalog: Sequence[Item], item_index: int, quantity: int) -> PurchaseLine:
        """Buy ``quantity`` units of ``catalog[item_index]`` for this customer.

        The item is charged first so that an ``OutOfStockError`` leaves the
        customer's history and loyalty balance untouched. On success the line
        is appended to the history and 1% of the raw subtotal is credited as
        loyalty points.

        Args:
            catalog (Sequence[Item]): The ledger catalog the index refers to.
            item_index (int): Position of the purchased item in ``catalog``.
            quantity (int): Number of units bought.

        Returns:
            PurchaseLine: The history entry that was appended.

        Raises:
            OutOfStockError: If the item does not hold enough stock.
        """
        item = catalog[item_index]
        item.purchase(quantity)
        line = PurchaseLine(item_index=item_index, quantity=quantity)
        self.purchase_history.append(line)
        self.loyalty_points += item.price * quantity * LOYALTY_RATE
        return line

    def compute_bill(self, catalog: Sequence[Item]) -> Bill:
        """Price the purchase history and apply the membership discount.

        The bill is recomputed from raw ``price * quantity`` per line; bulk
        discounts recorded in the sales log do not apply here.
        """
        lines = []
        subtotal = Decimal("0")
        for entry in self.purchase_history:
            item = catalog[entry.item_index]
            line_subtotal = item.price * entry.quantity
            lines.append(BillLine(item_name=item.name, quantity=entry.quantity, subtotal=line_subtotal))
            subtotal += line_subtotal
        discount = subtotal * self.discount_rate
        return Bill(
            subtotal=subtotal,
            discount=discount,
            final_total=subtotal - discount,
            loyalty_points=self.loyalty_points,
            lines=tuple(lines),
        )

    def describe(self) -> str:
        return (
            f"Name: {self.name}, ID: {self.customer_id}, "
            f"Membership Type: {self.membership_type}, "
            f"Loyalty Points: {self.loyalty_points:.2f}"
        )


@dataclass(frozen=True)
class SaleRecord:
    """Entry of the append-only sales log; ``total`` is the amount charged."""

    item_name: str
    customer_name: str
    quantity: int
    total: Decimal

    def describe(self) -> str:
        return (
            f"Item: {self.item_name}, Customer: {self.customer_name}, "
            f"Quantity: {self.quantity}, Total: ${self.total:.2f}"
        )


__all__ = [
    "Item",
    "PurchaseLine",
    "BillLine",
    "Bill",
    "Customer",
    "SaleRecord",
]
