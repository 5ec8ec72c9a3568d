"""Identity module - social handle resolution."""

from socialpay.identity.resolver import HandleResolver

__all__ = [
    "HandleResolver",
]
