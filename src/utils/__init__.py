"""Utilities package for the Bakery Ledger application."""

from .config import Config, get_config, reset_config
from .datetime_utils import parse_date, utc_now

__all__ = [
    "Config",
    "get_config",
    "reset_config",
    "parse_date",
    "utc_now",
]
