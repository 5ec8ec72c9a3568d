"""Crypto module - EIP-712 digests and intent signing."""

from socialpay.crypto.digest import (
    PAYMENT_INTENT_TYPE,
    PAYMENT_INTENT_TYPEHASH,
    IntentDigestBuilder,
    build_digest,
    build_typed_data,
    compute_domain_separator,
    domain_matches,
    hash_struct,
)
from socialpay.crypto.signer import SignatureGenerator

__all__ = [
    "PAYMENT_INTENT_TYPE",
    "PAYMENT_INTENT_TYPEHASH",
    "IntentDigestBuilder",
    "SignatureGenerator",
    "build_digest",
    "build_typed_data",
    "compute_domain_separator",
    "domain_matches",
    "hash_struct",
]
