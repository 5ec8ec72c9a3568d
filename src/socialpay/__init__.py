"""
SocialPay - Gasless stablecoin payments to social handles.

A user names a recipient by handle (e.g. a Telegram username); SocialPay
signs an EIP-712 payment intent with the relayer key and submits it to the
SocialPay contract, which pays the handle's linked wallet or holds the funds
until the handle is claimed.

Usage:
    >>> from socialpay import SocialPay, Config
    >>>
    >>> async with SocialPay(Config.from_env()) as pay:
    ...     await pay.request_payment(user_id, "bob", "@alice", "10")
    ...     outcome = await pay.confirm_payment(user_id)
"""

from socialpay.client import SocialPay
from socialpay.core.config import Config
from socialpay.core.exceptions import (
    ConfigurationError,
    LedgerError,
    LedgerUnavailableError,
    NoPendingPaymentError,
    PaymentExpiredError,
    PaymentInFlightError,
    PaymentStateError,
    SigningError,
    SocialPayError,
    SubmissionError,
    TransactionTimeoutError,
    ValidationError,
)
from socialpay.core.types import (
    FailureKind,
    HandleCheckResult,
    HandleInfo,
    OutcomeStatus,
    PaymentIntent,
    PaymentOutcome,
    PaymentProgress,
    PendingPayment,
    PendingPaymentState,
    ProgressStage,
    RejectionReason,
    Signature,
    SignedIntent,
    TransactionReceipt,
)
from socialpay.crypto import IntentDigestBuilder, SignatureGenerator, build_digest
from socialpay.identity import HandleResolver
from socialpay.ledger import LedgerClient
from socialpay.payments import PaymentOrchestrator, PendingPaymentStore

__version__ = "0.1.0"
__all__ = [
    # Main Client
    "SocialPay",
    # Components
    "HandleResolver",
    "IntentDigestBuilder",
    "LedgerClient",
    "PaymentOrchestrator",
    "PendingPaymentStore",
    "SignatureGenerator",
    "build_digest",
    # Types
    "FailureKind",
    "HandleCheckResult",
    "HandleInfo",
    "OutcomeStatus",
    "PaymentIntent",
    "PaymentOutcome",
    "PaymentProgress",
    "PendingPayment",
    "PendingPaymentState",
    "ProgressStage",
    "RejectionReason",
    "Signature",
    "SignedIntent",
    "TransactionReceipt",
    # Config
    "Config",
    # Exceptions
    "SocialPayError",
    "ConfigurationError",
    "ValidationError",
    "LedgerError",
    "LedgerUnavailableError",
    "SubmissionError",
    "TransactionTimeoutError",
    "SigningError",
    "PaymentStateError",
    "NoPendingPaymentError",
    "PaymentExpiredError",
    "PaymentInFlightError",
]
