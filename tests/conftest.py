"""Shared pytest fixtures and utilities for grocery ledger tests."""

from __future__ import annotations

import io
import sys
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, Sequence

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from grocery_ledger import cli, core_logic, data_manager  # noqa: E402

FIXED_TODAY = date(2026, 6, 15)
_CONFIG_TEMPLATE = (
    "[Store]\n"
    "StoreName = {store_name}\n"
    "DataFile = {data_file}\n\n"
    "[Defaults]\n"
    "LowStockThreshold = {threshold}\n"
    "ReportFile = {report_file}\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    data_file: Path
    store_name: str
    threshold: int


@dataclass(frozen=True)
class ShellRun:
    """Outcome of driving the interactive shell with scripted input."""

    exit_code: int
    output: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture(autouse=True)
def _isolate_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from an empty directory so no stray config.ini is discovered."""

    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture
def ledger() -> core_logic.Ledger:
    """Return an empty ledger."""

    return core_logic.Ledger()


@pytest.fixture
def stocked_ledger(ledger: core_logic.Ledger) -> core_logic.Ledger:
    """Return a ledger with a perishable, a non-perishable and an expired item plus two customers."""

    core_logic.add_item(ledger, "Milk", Decimal("2.50"), "Dairy", 20, date(2099, 1, 1))
    core_logic.add_item(ledger, "Rice", Decimal("1.20"), "Grains", 3)
    core_logic.add_item(ledger, "Yogurt", Decimal("0.99"), "Dairy", 6, date(2020, 1, 1))
    core_logic.add_customer(ledger, "Alice", 1, "Premium")
    core_logic.add_customer(ledger, "Bob", 2, "Regular")
    return ledger


@pytest.fixture
def config_factory(tmp_path: Path) -> Callable[..., ConfigBundle]:
    """Provide a callable that writes config.ini files on demand."""

    def _create_config(
        *,
        store_name: str = "Test Grocery",
        data_file: str = "store_data.txt",
        threshold: int = 4,
        report_file: str = "",
    ) -> ConfigBundle:
        bundle_dir = tmp_path / f"bundle_{uuid.uuid4().hex}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                store_name=store_name,
                data_file=data_file,
                threshold=threshold,
                report_file=report_file,
            ),
            encoding="utf-8",
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            data_file=(bundle_dir / data_file).resolve(),
            store_name=store_name,
            threshold=threshold,
        )

    return _create_config


@pytest.fixture
def runtime_context() -> core_logic.RuntimeContext:
    """Runtime context with default settings and an empty ledger."""

    return core_logic.RuntimeContext(settings=data_manager.ConfigSettings(), ledger=core_logic.Ledger())


@pytest.fixture
def make_session(runtime_context: core_logic.RuntimeContext) -> Callable[..., cli.ShellSession]:
    """Build a shell session whose input is the given lines."""

    def _make(lines: Sequence[str], *, context: core_logic.RuntimeContext | None = None) -> cli.ShellSession:
        return cli.ShellSession(
            context=context if context is not None else runtime_context,
            stdin=io.StringIO("".join(f"{line}\n" for line in lines)),
            stdout=io.StringIO(),
        )

    return _make


@pytest.fixture
def run_shell() -> Callable[..., ShellRun]:
    """Drive ``cli.main`` with scripted input lines and capture its output."""

    def _run(lines: Sequence[str], argv: Sequence[str] = ()) -> ShellRun:
        stdout = io.StringIO()
        exit_code = cli.main(
            list(argv),
            stdin=io.StringIO("".join(f"{line}\n" for line in lines)),
            stdout=stdout,
        )
        return ShellRun(exit_code=exit_code, output=stdout.getvalue())

    return _run
