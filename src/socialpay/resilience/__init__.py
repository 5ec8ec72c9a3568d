"""
Resilience Layer for SocialPay.

Provides the retry policy applied to ledger reads.
"""

from .retry import DEFAULT_READ_ATTEMPTS, execute_with_retry, is_transient_error

__all__ = [
    "DEFAULT_READ_ATTEMPTS",
    "execute_with_retry",
    "is_transient_error",
]
