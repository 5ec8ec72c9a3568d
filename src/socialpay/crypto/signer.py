"""
SignatureGenerator - signs SocialPay payment intents.

Holds the relayer's signing key as an explicitly constructed capability
object. The key is never logged and never leaves this object.
"""

from __future__ import annotations

import secrets
import threading
import time
from typing import Callable

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys import keys

from socialpay.core.exceptions import SigningError, ValidationError
from socialpay.core.logging import get_logger
from socialpay.core.types import PaymentIntent, Signature, SignedIntent
from socialpay.crypto.digest import (
    DEFAULT_DOMAIN_NAME,
    DEFAULT_DOMAIN_VERSION,
    build_digest,
    build_typed_data,
)

logger = get_logger("crypto.signer")

DEFAULT_DEADLINE_WINDOW_MINUTES = 60

# Random tie-breaker range appended below the microsecond timestamp
NONCE_TIE_BREAKER = 1000


class SignatureGenerator:
    """
    Signs payment-intent digests with a secp256k1 key.

    Also owns the nonce/deadline policy for the intents it signs.

    Usage:
        signer = SignatureGenerator("0x...private key...")
        nonce = signer.generate_nonce()
        deadline = signer.generate_deadline()
        signed = signer.sign_intent(intent, contract, chain_id, domain_separator)
    """

    def __init__(
        self,
        private_key: str | bytes | None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            private_key: Hex-encoded (with or without 0x) or raw 32-byte key
            clock: Wall clock in Unix seconds (injectable for tests)

        Raises:
            SigningError: If the key is absent or invalid
        """
        if not private_key:
            raise SigningError("Signing key is not configured")
        try:
            self._account = Account.from_key(private_key)
        except Exception as e:
            # Never include the key material in the message
            raise SigningError(f"Invalid signing key: {type(e).__name__}") from None

        self._clock = clock
        self._nonce_lock = threading.Lock()
        self._last_micros = 0
        self._last_nonce = -1

    def __repr__(self) -> str:
        return f"SignatureGenerator(address={self.address!r})"

    @property
    def address(self) -> str:
        """Checksummed address of the signing key."""
        return self._account.address

    # ─── Signing ─────────────────────────────────────────────────────

    def sign(self, digest: bytes) -> Signature:
        """
        Sign a raw 32-byte digest (no EIP-191 prefix).

        Signatures are deterministic (RFC 6979) and ``v`` is 27 or 28.
        """
        if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
            raise SigningError("Digest must be exactly 32 bytes")
        try:
            signed = self._account.unsafe_sign_hash(bytes(digest))
        except Exception as e:
            raise SigningError(f"Failed to sign digest: {e}") from e
        return Signature(r=signed.r, s=signed.s, v=signed.v)

    def sign_intent(
        self,
        intent: PaymentIntent,
        verifying_contract: str,
        chain_id: int,
        domain_separator: bytes,
    ) -> SignedIntent:
        """
        Build the intent digest against the contract's domain separator and sign it.

        Raises:
            ValidationError: If the intent's deadline is not in the future
            SigningError: If signing fails
        """
        self._check_deadline(intent)
        digest = build_digest(intent, verifying_contract, chain_id, domain_separator)
        signature = self.sign(digest)
        logger.debug(
            f"Signed intent for @{intent.handle} ({intent.platform}) "
            f"nonce={intent.async_nonce} deadline={intent.deadline}"
        )
        return SignedIntent(
            intent=intent,
            signature=signature,
            signer_address=self.address,
            digest=digest,
        )

    def sign_typed_data(
        self,
        intent: PaymentIntent,
        verifying_contract: str,
        chain_id: int,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        domain_version: str = DEFAULT_DOMAIN_VERSION,
    ) -> SignedIntent:
        """
        Sign the full EIP-712 structure, computing the domain locally.

        Produces the same signature as sign_intent() whenever the contract's
        domain separator matches the configured domain.
        """
        self._check_deadline(intent)
        typed_data = build_typed_data(
            intent, verifying_contract, chain_id, domain_name, domain_version
        )
        try:
            signable = encode_typed_data(full_message=typed_data)
            signed = self._account.sign_message(signable)
        except Exception as e:
            raise SigningError(f"Failed to sign typed data: {e}") from e
        return SignedIntent(
            intent=intent,
            signature=Signature(r=signed.r, s=signed.s, v=signed.v),
            signer_address=self.address,
            digest=bytes(signed.message_hash),
        )

    @staticmethod
    def recover(digest: bytes, signature: Signature) -> str:
        """Recover the checksummed signer address from a digest signature."""
        if signature.v not in (27, 28):
            raise SigningError(f"Unsupported recovery id: {signature.v}")
        try:
            sig = keys.Signature(vrs=(signature.v - 27, signature.r, signature.s))
            return sig.recover_public_key_from_msg_hash(bytes(digest)).to_checksum_address()
        except Exception as e:
            raise SigningError(f"Failed to recover signer: {e}") from e

    # ─── Nonce / Deadline Policy ─────────────────────────────────────

    def generate_nonce(self) -> int:
        """
        Generate an asyncNonce for a new intent.

        Microsecond wall clock times 1000 plus a random tie-breaker. The time
        component never moves backwards and successive nonces from this
        generator are strictly increasing. Uniqueness across processes is
        only probabilistic; the contract rejects reused nonces.
        """
        with self._nonce_lock:
            micros = max(int(self._clock() * 1_000_000), self._last_micros)
            self._last_micros = micros
            nonce = micros * NONCE_TIE_BREAKER + secrets.randbelow(NONCE_TIE_BREAKER)
            if nonce <= self._last_nonce:
                nonce = self._last_nonce + 1
            self._last_nonce = nonce
            return nonce

    def generate_deadline(self, window_minutes: int = DEFAULT_DEADLINE_WINDOW_MINUTES) -> int:
        """Unix seconds ``window_minutes`` from now."""
        if window_minutes <= 0:
            raise ValidationError("window_minutes must be positive", field="window_minutes")
        return int(self._clock()) + window_minutes * 60

    def _check_deadline(self, intent: PaymentIntent) -> None:
        if intent.deadline <= int(self._clock()):
            raise ValidationError(
                f"Intent deadline {intent.deadline} is not in the future", field="deadline"
            )
