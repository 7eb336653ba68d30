"""Enumerations and rates shared across the grocery ledger modules.

Centralises domain constants so that the record types, the ledger, the text
codec and the interactive shell rely on a single source of truth for
membership tiers, file section headers and monetary rates.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


# Rates applied by the purchase workflow and the bill view.
REGULAR_DISCOUNT = Decimal("0.00")
PREMIUM_DISCOUNT = Decimal("0.10")
LOYALTY_RATE = Decimal("0.01")
BULK_DISCOUNT = Decimal("0.05")
BULK_THRESHOLD = 10

FIELD_SEPARATOR = "|"


class MembershipType(str, Enum):
    """Enumerate the membership tiers offered to customers.

    Membership is stored as free text on the customer; only ``PREMIUM`` is
    special-cased, any other value is billed like ``REGULAR``.
    """

    REGULAR = "Regular"
    PREMIUM = "Premium"


class SectionName(str, Enum):
    """Enumerate the section headers of the text data file."""

    ITEMS = "Items"
    CUSTOMERS = "Customers"

    @property
    def header(self) -> str:
        return f"{self.value}:"


class SheetName(str, Enum):
    """Enumerate the worksheet names written by the sales report export."""

    ITEMS = "Items"
    CUSTOMERS = "Customers"
    SALES_LOG = "SalesLog"


__all__ = [
    "REGULAR_DISCOUNT",
    "PREMIUM_DISCOUNT",
    "LOYALTY_RATE",
    "BULK_DISCOUNT",
    "BULK_THRESHOLD",
    "FIELD_SEPARATOR",
    "MembershipType",
    "SectionName",
    "SheetName",
]
