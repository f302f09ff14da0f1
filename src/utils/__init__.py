"""Utilities package for the raw material cost tracker."""

from .config import get_config, reset_config, get_database_url
from .datetime_utils import utc_now, as_utc

__all__ = [
    "get_config",
    "reset_config",
    "get_database_url",
    "utc_now",
    "as_utc",
]
