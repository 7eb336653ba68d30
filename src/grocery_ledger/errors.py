"""Exception hierarchy raised by the grocery ledger layers."""

from __future__ import annotations


class LedgerError(Exception):
    """Raised when a requested operation violates a ledger constraint."""


class NotFoundError(LedgerError):
    """Raised when a referenced item or customer is unknown."""


class OutOfStockError(LedgerError):
    """Raised when a purchase asks for more units than an item has in stock."""


class LedgerIOError(LedgerError, IOError):
    """Raised when the data file cannot be opened for reading or writing."""


class MalformedRecordError(LedgerError, ValueError):
    """Raised when a line of the data file cannot be decoded into a record."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class InputError(LedgerError, ValueError):
    """Raised when interactive input cannot be converted into a field value."""


__all__ = [
    "LedgerError",
    "NotFoundError",
    "OutOfStockError",
    "LedgerIOError",
    "MalformedRecordError",
    "InputError",
]
