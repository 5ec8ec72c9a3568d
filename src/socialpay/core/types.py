"""
Type definitions for SocialPay.

This module contains the enums, value types and result records shared by
the resolver, the signer, the pending-payment store and the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable

from socialpay.core.exceptions import ValidationError

UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x" + "0" * 40


class PendingPaymentState(str, Enum):
    """Lifecycle state of a pending payment."""

    PROPOSED = "proposed"  # Requested, waiting for /confirm
    CONFIRMED = "confirmed"  # Confirm accepted
    SUBMITTED = "submitted"  # Handed to the ledger, in flight
    SETTLED = "settled"  # Receipt status 1
    CANCELLED = "cancelled"  # Cancelled while proposed
    EXPIRED = "expired"  # Confirm arrived after the proposal window


class OutcomeStatus(str, Enum):
    """Terminal result of a command on the payment surface."""

    PROPOSED = "proposed"
    CANCELLED = "cancelled"
    SETTLED = "settled"
    FAILED = "failed"
    NO_PENDING_PAYMENT = "no_pending_payment"
    PAYMENT_EXPIRED = "payment_expired"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    """Why a payment request was refused before anything was stored."""

    SELF_PAYMENT = "self_payment"
    INVALID_AMOUNT = "invalid_amount"
    MISSING_HANDLE = "missing_handle"
    PAYMENT_IN_FLIGHT = "payment_in_flight"


class FailureKind(str, Enum):
    """Why a confirmed payment did not settle."""

    INVALID_INTENT = "invalid_intent"  # Stored proposal no longer forms a valid intent
    SIGNING_ABORTED = "signing_aborted"  # Mandatory read (domain separator) failed
    SIGNING_ERROR = "signing_error"
    SUBMISSION_FAILURE = "submission_failure"
    TRANSACTION_REVERTED = "transaction_reverted"
    UNEXPECTED_ERROR = "unexpected_error"


class ProgressStage(str, Enum):
    """Intermediate checkpoints reported while a confirm is in flight."""

    RECIPIENT_RESOLVED = "recipient_resolved"
    SIGNED = "signed"
    SUBMITTED = "submitted"


def _check_uint256(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer", field=name)
    if value < 0 or value > UINT256_MAX:
        raise ValidationError(f"{name} is out of uint256 range", field=name)


@dataclass(frozen=True)
class PaymentIntent:
    """
    The typed-data value the signing key authorizes.

    Field names mirror the on-chain ``PaymentIntent`` struct; ``async_nonce``
    is encoded as ``asyncNonce``.
    """

    handle: str
    platform: str
    amount: int
    async_nonce: int
    deadline: int

    def __post_init__(self) -> None:
        if not self.handle:
            raise ValidationError("Handle is required", field="handle")
        if self.handle.startswith("@"):
            raise ValidationError("Handle must not start with '@'", field="handle")
        if not self.platform:
            raise ValidationError("Platform is required", field="platform")
        _check_uint256("amount", self.amount)
        if self.amount == 0:
            raise ValidationError("Amount must be positive", field="amount")
        _check_uint256("async_nonce", self.async_nonce)
        _check_uint256("deadline", self.deadline)

    def to_message(self) -> dict[str, Any]:
        """Return the EIP-712 ``message`` object for this intent."""
        return {
            "handle": self.handle,
            "platform": self.platform,
            "amount": self.amount,
            "asyncNonce": self.async_nonce,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class Signature:
    """Recoverable secp256k1 signature with ``v`` in {27, 28}."""

    r: int
    s: int
    v: int

    def to_bytes(self) -> bytes:
        """Pack as ``r || s || v`` (65 bytes)."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


@dataclass(frozen=True)
class SignedIntent:
    """A PaymentIntent together with the signature that authorizes it."""

    intent: PaymentIntent
    signature: Signature
    signer_address: str
    digest: bytes


@dataclass
class PendingPayment:
    """A proposed transfer held between /pay and /confirm."""

    id: str
    initiator_identity: Hashable
    initiator_handle: str
    recipient_handle: str
    amount_decimal: str
    created_at: float
    state: PendingPaymentState = PendingPaymentState.PROPOSED
    confirmed_at: float | None = None
    tx_hash: str | None = None

    def age(self, now: float) -> float:
        return now - self.created_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "initiator_identity": self.initiator_identity,
            "initiator_handle": self.initiator_handle,
            "recipient_handle": self.recipient_handle,
            "amount_decimal": self.amount_decimal,
            "created_at": self.created_at,
            "state": self.state.value,
            "confirmed_at": self.confirmed_at,
            "tx_hash": self.tx_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingPayment:
        return cls(
            id=data["id"],
            initiator_identity=data["initiator_identity"],
            initiator_handle=data["initiator_handle"],
            recipient_handle=data["recipient_handle"],
            amount_decimal=data["amount_decimal"],
            created_at=float(data["created_at"]),
            state=PendingPaymentState(data.get("state", PendingPaymentState.PROPOSED.value)),
            confirmed_at=data.get("confirmed_at"),
            tx_hash=data.get("tx_hash"),
        )


@dataclass(frozen=True)
class HandleInfo:
    """On-chain status of a social handle."""

    handle: str
    platform: str
    is_claimed: bool
    linked_wallet: str | None
    pending_balance: int
    pending_balance_decimal: str


@dataclass(frozen=True)
class TransactionReceipt:
    """The subset of an Ethereum transaction receipt SocialPay interprets."""

    tx_hash: str
    status: int
    block_number: int | None = None
    gas_used: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> TransactionReceipt:
        def parse_quantity(val: str | int | None) -> int | None:
            if val is None:
                return None
            if isinstance(val, int):
                return val
            return int(val, 16)

        return cls(
            tx_hash=data["transactionHash"],
            status=parse_quantity(data.get("status")) or 0,
            block_number=parse_quantity(data.get("blockNumber")),
            gas_used=parse_quantity(data.get("gasUsed")),
        )


@dataclass
class PaymentProgress:
    """Progress notification emitted during confirm_payment."""

    stage: ProgressStage
    initiator_identity: Hashable
    recipient_handle: str
    recipient_info: HandleInfo | None = None
    tx_hash: str | None = None


@dataclass
class PaymentOutcome:
    """Structured result of request/confirm/cancel on the payment surface."""

    status: OutcomeStatus
    initiator_identity: Hashable
    recipient_handle: str | None = None
    amount_decimal: str | None = None
    tx_hash: str | None = None
    rejection: RejectionReason | None = None
    failure: FailureKind | None = None
    error: str | None = None
    recipient_info: HandleInfo | None = None
    signed_intent: SignedIntent | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status in (
            OutcomeStatus.PROPOSED,
            OutcomeStatus.CANCELLED,
            OutcomeStatus.SETTLED,
        )


@dataclass
class HandleCheckResult:
    """Result of a read-only handle lookup."""

    handle: str
    info: HandleInfo | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.info is not None
