"""
Ledger module - JSON-RPC access to the SocialPay contract.
"""

from socialpay.ledger.client import JsonRpcError, LedgerClient

__all__ = [
    "JsonRpcError",
    "LedgerClient",
]
