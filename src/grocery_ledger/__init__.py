"""Grocery ledger: in-memory inventory and customer-loyalty tracking.

Importing the package sets up the shared ``grocery_ledger`` logger. Every
record reaches ``.logs/grocery_ledger.log`` under the project root, while the
terminal only shows warnings and errors next to the interactive menu.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR = PROJECT_ROOT / ".logs"
LOG_FILE = LOG_DIR / "grocery_ledger.log"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
CONSOLE_LEVEL = logging.WARNING


def _attach_file_handler(logger: logging.Logger, formatter: logging.Formatter) -> None:
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    except OSError as exc:
        print(f"Warning: ledger activity will not be written to '{LOG_FILE}': {exc}", file=sys.stderr)
        return
    handler.setLevel(logging.INFO)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _configure_logging() -> logging.Logger:
    """Return the package logger, attaching its handlers on first use."""

    logger = logging.getLogger(__name__)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    _attach_file_handler(logger, formatter)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(CONSOLE_LEVEL)
    console.setFormatter(formatter)
    logger.addHandler(console)
    return logger


log = _configure_logging()
log.info("Grocery ledger logging ready (file: %s)", LOG_FILE)
