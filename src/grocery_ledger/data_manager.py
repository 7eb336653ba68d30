"""Data access layer for the grocery ledger.

This module provides low-level helpers that read from and write to disk.
Business logic belongs elsewhere.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. The store data file: encoding items and customers into the pipe-delimited
   text format and decoding them back.
3. The sales report: writing a read-only ``.xlsx`` summary of a session.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

import openpyxl
from openpyxl.styles import Font

from . import log
from .constants import FIELD_SEPARATOR, SectionName, SheetName
from .errors import LedgerIOError, MalformedRecordError
from .records import Customer, Item, SaleRecord


CONFIG_FILE_NAME = "config.ini"
DEFAULT_STORE_NAME = "Grocery Management System"
DEFAULT_LOW_STOCK_THRESHOLD = 5

ITEM_FIELD_COUNT = 5
CUSTOMER_FIELD_COUNT = 4

REPORT_COLUMNS = {
    SheetName.ITEMS.value: ["Name", "Price", "Category", "Stock", "ExpirationDate", "Expired"],
    SheetName.CUSTOMERS.value: ["Name", "CustomerID", "MembershipType", "LoyaltyPoints"],
    SheetName.SALES_LOG.value: ["ItemName", "CustomerName", "Quantity", "Total"],
}


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    store_name: str = DEFAULT_STORE_NAME
    data_file: Optional[Path] = None
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    report_file: Optional[Path] = None


@dataclass(frozen=True)
class StoreSnapshot:
    """Records decoded from a store data file, in file order."""

    items: List[Item] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls the interactive shell.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. Otherwise the function walks up from the current
    working directory toward the filesystem root looking for a file named
    ``CONFIG_FILE_NAME``; the first match is considered authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered file.

    Raises:
        FileNotFoundError: If the search exhausts all parent directories without
            finding ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Args:
        config_path (Path): Path to the configuration file, relative or
            absolute. ``~`` is expanded.

    Returns:
        configparser.ConfigParser: Parser holding the raw configuration data.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
    """

    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def _resolve_optional_path(raw: str, base_path: Path) -> Optional[Path]:
    raw = raw.strip()
    if not raw:
        return None
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_path / path).resolve()
    return path


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    ``[Store] StoreName``, ``[Store] DataFile`` and
    ``[Defaults] LowStockThreshold`` are required; ``[Defaults] ReportFile``
    may be omitted. Relative paths are anchored on ``base_path`` (the config
    file's directory) or on the current working directory.

    Raises:
        KeyError: If a required section or option is missing.
        ValueError: If ``LowStockThreshold`` is not an integer.
    """

    try:
        store_name = parser.get("Store", "StoreName")
        data_file_raw = parser.get("Store", "DataFile")
        threshold = parser.getint("Defaults", "LowStockThreshold")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    report_raw = parser.get("Defaults", "ReportFile", fallback="")
    if base_path is None:
        base_path = Path.cwd()

    return ConfigSettings(
        store_name=store_name,
        data_file=_resolve_optional_path(data_file_raw, base_path),
        low_stock_threshold=threshold,
        report_file=_resolve_optional_path(report_raw, base_path),
    )


def serialize_item(record: Item) -> str:
    """Encode an item as ``name|price|category|stock|expiration``.

    Field values are not escaped; a separator inside a value yields a line
    that :func:`deserialize_item` rejects.
    """

    expiration = record.expiration_date.isoformat() if record.expiration_date is not None else ""
    return FIELD_SEPARATOR.join(
        [record.name, str(record.price), record.category, str(record.stock), expiration]
    )


def serialize_customer(record: Customer) -> str:
    """Encode a customer as ``name|id|membership|loyalty_points``."""

    return FIELD_SEPARATOR.join(
        [record.name, str(record.customer_id), record.membership_type, str(record.loyalty_points)]
    )


def _split_fields(line: str, expected: int, line_number: Optional[int]) -> List[str]:
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != expected:
        raise MalformedRecordError(
            f"expected {expected} fields, found {len(fields)}: {line!r}",
            line_number=line_number,
        )
    return fields


def _parse_decimal(raw: str, label: str, line_number: Optional[int]) -> Decimal:
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise MalformedRecordError(f"invalid {label} {raw!r}", line_number=line_number) from exc


def _parse_amount(raw: str, label: str, line_number: Optional[int]) -> Decimal:
    value = _parse_decimal(raw, label, line_number)
    if not value.is_finite() or value < 0:
        raise MalformedRecordError(f"{label} must be a finite, nonnegative number: {raw!r}", line_number=line_number)
    return value


def _parse_int(raw: str, label: str, line_number: Optional[int]) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise MalformedRecordError(f"invalid {label} {raw!r}", line_number=line_number) from exc


def _parse_count(raw: str, label: str, line_number: Optional[int]) -> int:
    value = _parse_int(raw, label, line_number)
    if value < 0:
        raise MalformedRecordError(f"{label} cannot be negative: {raw!r}", line_number=line_number)
    return value


def deserialize_item(line: str, *, line_number: Optional[int] = None) -> Item:
    """Decode one item line into an :class:`Item`.

    Raises:
        MalformedRecordError: If the field count or a numeric/date field is
            wrong.
    """

    name, price_raw, category, stock_raw, expiration_raw = _split_fields(line, ITEM_FIELD_COUNT, line_number)
    expiration_date = None
    if expiration_raw.strip():
        try:
            expiration_date = date.fromisoformat(expiration_raw.strip())
        except ValueError as exc:
            raise MalformedRecordError(
                f"invalid expiration date {expiration_raw!r}", line_number=line_number
            ) from exc
    return Item(
        name=name,
        price=_parse_amount(price_raw, "price", line_number),
        category=category,
        stock=_parse_count(stock_raw, "stock", line_number),
        expiration_date=expiration_date,
    )


def deserialize_customer(line: str, *, line_number: Optional[int] = None) -> Customer:
    """Decode one customer line into a :class:`Customer`.

    Loyalty points are assigned directly from the stored value; the purchase
    history is not part of the file and starts empty.
    """

    name, id_raw, membership_type, points_raw = _split_fields(line, CUSTOMER_FIELD_COUNT, line_number)
    return Customer(
        name=name,
        customer_id=_parse_int(id_raw, "customer id", line_number),
        membership_type=membership_type,
        loyalty_points=_parse_amount(points_raw, "loyalty points", line_number),
    )


def encode_store(items: Iterable[Item], customers: Iterable[Customer]) -> Iterator[str]:
    """Yield the lines of a store data file, without line terminators."""

    yield SectionName.ITEMS.header
    for item in items:
        yield serialize_item(item)
    yield SectionName.CUSTOMERS.header
    for customer in customers:
        yield serialize_customer(customer)


def _match_section(line: str) -> Optional[SectionName]:
    # Only the text before the first ':' names a section; anything after it is ignored.
    label, colon, _ = line.partition(":")
    if not colon:
        return None
    for section in SectionName:
        if label.strip() == section.value:
            return section
    return None


def decode_store(lines: Iterable[str]) -> StoreSnapshot:
    """Decode the lines of a store data file.

    A section header starts a run of records that ends at the next header or
    at a blank line. Lines outside a section are ignored.

    Raises:
        MalformedRecordError: If a record line cannot be decoded.
    """

    snapshot = StoreSnapshot()
    section: Optional[SectionName] = None
    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        header = _match_section(line)
        if header is not None:
            section = header
            continue
        if not line.strip():
            section = None
            continue
        if section is SectionName.ITEMS:
            snapshot.items.append(deserialize_item(line, line_number=line_number))
        elif section is SectionName.CUSTOMERS:
            snapshot.customers.append(deserialize_customer(line, line_number=line_number))
        else:
            log.debug("Ignoring line %d outside of any section", line_number)
    return snapshot


def write_store_file(destination: Path, items: Iterable[Item], customers: Iterable[Customer]) -> None:
    """Write items and customers to ``destination`` in the text format.

    Raises:
        LedgerIOError: If the file cannot be opened for writing.
    """

    dest = Path(destination).expanduser()
    try:
        handle = dest.open("w", encoding="utf-8", newline="\n")
    except OSError as exc:
        log.error("Failed to open '%s' for saving: %s", dest, exc)
        raise LedgerIOError(f"Failed to open file for saving: {dest}") from exc
    with handle:
        for line in encode_store(items, customers):
            handle.write(line + "\n")


def read_store_file(source: Path) -> StoreSnapshot:
    """Read and decode the store data file at ``source``.

    Raises:
        LedgerIOError: If the file cannot be opened for reading.
        MalformedRecordError: If a record line cannot be decoded.
    """

    src = Path(source).expanduser()
    try:
        handle = src.open("r", encoding="utf-8")
    except OSError as exc:
        log.error("Failed to open '%s' for loading: %s", src, exc)
        raise LedgerIOError(f"Failed to open file for loading: {src}") from exc
    with handle:
        return decode_store(handle)


def _create_report_workbook() -> openpyxl.Workbook:
    workbook = openpyxl.Workbook()
    if "Sheet" in workbook.sheetnames:
        del workbook["Sheet"]

    bold_font = Font(bold=True)
    for sheet_name, columns in REPORT_COLUMNS.items():
        sheet = workbook.create_sheet(title=sheet_name)
        for col_idx, column_name in enumerate(columns, 1):
            cell = sheet.cell(row=1, column=col_idx)
            cell.value = column_name
            cell.font = bold_font
    return workbook


def export_report(
    destination: Path,
    *,
    items: Sequence[Item],
    customers: Sequence[Customer],
    sales: Sequence[SaleRecord],
    today: Optional[date] = None,
) -> Path:
    """Write a sales report workbook with items, customers and the sales log.

    The workbook is a one-way report; nothing reads it back. Parent
    directories are created on demand.

    Returns:
        Path: The resolved destination that received the workbook.
    """

    workbook = _create_report_workbook()
    items_sheet = workbook[SheetName.ITEMS.value]
    for item in items:
        items_sheet.append(
            [item.name, item.price, item.category, item.stock, item.expiration_date, item.is_expired(today)]
        )
    customers_sheet = workbook[SheetName.CUSTOMERS.value]
    for customer in customers:
        customers_sheet.append(
            [customer.name, customer.customer_id, customer.membership_type, customer.loyalty_points]
        )
    sales_sheet = workbook[SheetName.SALES_LOG.value]
    for sale in sales:
        sales_sheet.append([sale.item_name, sale.customer_name, sale.quantity, sale.total])

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)
    return dest
