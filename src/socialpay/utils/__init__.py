"""Utility functions for SocialPay."""

from socialpay.utils.amounts import (
    format_units,
    normalize_handle,
    parse_positive_units,
    parse_units,
)

__all__ = [
    # Amount utilities
    "format_units",
    "parse_positive_units",
    "parse_units",
    # Handles
    "normalize_handle",
]
