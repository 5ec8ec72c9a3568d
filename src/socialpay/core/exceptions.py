"""
Exception hierarchy for SocialPay.

All SocialPay-specific exceptions inherit from SocialPayError for easy catching.
Components raise these; the PaymentOrchestrator converts them into
PaymentOutcome values before anything reaches the transport layer.
"""

from __future__ import annotations

from typing import Any


class SocialPayError(Exception):
    """
    Base exception for all SocialPay errors.

    Example:
        >>> try:
        ...     await resolver.resolve("alice")
        ... except SocialPayError as e:
        ...     print(f"SocialPay error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(SocialPayError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - Configuration values fail validation
    """

    pass


class ValidationError(SocialPayError):
    """
    Input validation error.

    Raised when:
    - An amount is not a positive decimal with at most 6 fractional digits
    - A handle is empty or malformed
    - A payment intent field is out of uint256 range
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field


class LedgerError(SocialPayError):
    """
    Base exception for ledger contract interactions.

    Raised when a JSON-RPC call against the SocialPay contract fails.
    """

    def __init__(
        self,
        message: str,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.method = method


class LedgerUnavailableError(LedgerError):
    """
    A read call against the ledger failed.

    Raised when:
    - Every configured RPC endpoint timed out or returned an error
    - The returned data could not be ABI-decoded
    """

    pass


class SubmissionError(LedgerError):
    """
    The ledger rejected the signed payment intent.

    Raised when:
    - Gas estimation reverts (nonce reuse, insufficient balance, expired deadline)
    - eth_sendRawTransaction returns an error
    - Waiting for the receipt fails

    ``reason`` carries the ledger's message verbatim.
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, method=method, details=details)
        self.reason = reason or message

    def __str__(self) -> str:
        return self.reason


class TransactionTimeoutError(SubmissionError):
    """
    Transaction timed out waiting for a receipt.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str,
        timeout_seconds: float,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, method="eth_getTransactionReceipt", details=details)
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


class SigningError(SocialPayError):
    """
    The signing key is absent or invalid, or a digest could not be signed.

    Never retried locally.
    """

    pass


class PaymentStateError(SocialPayError):
    """
    Base exception for pending-payment state machine violations.
    """

    def __init__(
        self,
        message: str,
        initiator_identity: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.initiator_identity = initiator_identity


class NoPendingPaymentError(PaymentStateError):
    """No Proposed payment exists for the initiator."""

    pass


class PaymentExpiredError(PaymentStateError):
    """The Proposed payment outlived its confirmation window and was removed."""

    def __init__(
        self,
        message: str,
        initiator_identity: Any = None,
        age_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, initiator_identity, details)
        self.age_seconds = age_seconds


class PaymentInFlightError(PaymentStateError):
    """The initiator already has a submitted payment awaiting confirmation."""

    pass
