"""Payments module - pending-payment lifecycle and orchestration."""

from socialpay.payments.orchestrator import PaymentOrchestrator, ProgressCallback
from socialpay.payments.store import DEFAULT_PROPOSAL_TTL_SECONDS, PendingPaymentStore

__all__ = [
    "DEFAULT_PROPOSAL_TTL_SECONDS",
    "PaymentOrchestrator",
    "PendingPaymentStore",
    "ProgressCallback",
]
