"""
PaymentOrchestrator - request → confirm → sign → submit pipeline.

Composes the handle resolver, the pending-payment store, the signature
generator and the ledger client. Holds no state of its own across calls.
Every command returns a structured outcome; component exceptions are
converted here and never reach the transport layer.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Hashable

from socialpay.core.exceptions import (
    LedgerUnavailableError,
    NoPendingPaymentError,
    PaymentExpiredError,
    PaymentInFlightError,
    SigningError,
    SubmissionError,
    ValidationError,
)
from socialpay.core.logging import get_logger
from socialpay.core.types import (
    FailureKind,
    HandleCheckResult,
    HandleInfo,
    OutcomeStatus,
    PaymentIntent,
    PaymentOutcome,
    PaymentProgress,
    PendingPayment,
    ProgressStage,
    RejectionReason,
)
from socialpay.crypto.digest import (
    DEFAULT_DOMAIN_NAME,
    DEFAULT_DOMAIN_VERSION,
    IntentDigestBuilder,
)
from socialpay.utils.amounts import DEFAULT_DECIMALS, normalize_handle, parse_positive_units

if TYPE_CHECKING:
    from socialpay.crypto.signer import SignatureGenerator
    from socialpay.identity.resolver import HandleResolver
    from socialpay.ledger.client import LedgerClient
    from socialpay.payments.store import PendingPaymentStore

logger = get_logger("payments.orchestrator")

ProgressCallback = Callable[[PaymentProgress], Awaitable[None]]


class PaymentOrchestrator:
    """
    Drives a social payment from request to on-chain settlement.

    Usage:
        outcome = await orchestrator.request_payment(42, "bob", "@alice", "10")
        outcome = await orchestrator.confirm_payment(42)
        if outcome.status == OutcomeStatus.SETTLED:
            print(outcome.tx_hash)
    """

    def __init__(
        self,
        store: PendingPaymentStore,
        resolver: HandleResolver,
        signer: SignatureGenerator,
        ledger: LedgerClient,
        verifying_contract: str,
        chain_id: int,
        platform: str = "telegram",
        token_decimals: int = DEFAULT_DECIMALS,
        deadline_window_minutes: int = 60,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        domain_version: str = DEFAULT_DOMAIN_VERSION,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._signer = signer
        self._ledger = ledger
        self._builder = IntentDigestBuilder(verifying_contract, chain_id, domain_name, domain_version)
        self._platform = platform
        self._token_decimals = token_decimals
        self._deadline_window_minutes = deadline_window_minutes

    @property
    def platform(self) -> str:
        return self._platform

    # ─── Request ─────────────────────────────────────────────────────

    async def request_payment(
        self,
        initiator_identity: Hashable | None,
        initiator_handle: str | None,
        recipient: str | None,
        amount_decimal: str | None,
    ) -> PaymentOutcome:
        """
        Validate a /pay command and store it as the initiator's proposal.

        Returns PROPOSED, or REJECTED with SELF_PAYMENT, INVALID_AMOUNT,
        MISSING_HANDLE or PAYMENT_IN_FLIGHT.
        """
        if initiator_identity is None or not (initiator_handle or "").strip():
            return self._rejected(
                initiator_identity,
                RejectionReason.MISSING_HANDLE,
                "A username is required to send payments",
            )
        try:
            sender = normalize_handle(initiator_handle)
        except ValidationError as e:
            return self._rejected(initiator_identity, RejectionReason.MISSING_HANDLE, e.message)
        try:
            recipient_handle = normalize_handle(recipient)
        except ValidationError as e:
            error = e.message if (recipient or "").strip("@ ") else "Recipient handle is required"
            return self._rejected(initiator_identity, RejectionReason.MISSING_HANDLE, error)

        if sender.casefold() == recipient_handle.casefold():
            return self._rejected(
                initiator_identity,
                RejectionReason.SELF_PAYMENT,
                "You cannot send money to yourself",
                recipient_handle=recipient_handle,
            )

        amount_text = (amount_decimal or "").strip()
        try:
            parse_positive_units(amount_text, self._token_decimals)
        except ValidationError as e:
            return self._rejected(
                initiator_identity,
                RejectionReason.INVALID_AMOUNT,
                e.message,
                recipient_handle=recipient_handle,
            )

        try:
            pending = await self._store.propose(
                initiator_identity, sender, recipient_handle, amount_text
            )
        except PaymentInFlightError as e:
            return self._rejected(
                initiator_identity,
                RejectionReason.PAYMENT_IN_FLIGHT,
                e.message,
                recipient_handle=recipient_handle,
            )

        logger.info(f"@{sender} proposed {amount_text} to @{recipient_handle}")
        return PaymentOutcome(
            status=OutcomeStatus.PROPOSED,
            initiator_identity=initiator_identity,
            recipient_handle=recipient_handle,
            amount_decimal=amount_text,
            metadata={"payment_id": pending.id, "expires_in": self._store.ttl_seconds},
        )

    # ─── Cancel ──────────────────────────────────────────────────────

    async def cancel_payment(self, initiator_identity: Hashable) -> PaymentOutcome:
        """Cancel the initiator's proposal (CANCELLED or NO_PENDING_PAYMENT)."""
        cancelled = await self._store.cancel(initiator_identity)
        if cancelled is None:
            current = await self._store.get(initiator_identity)
            error = "No pending payment to cancel"
            if current is not None:
                error = "Payment already submitted and cannot be cancelled"
            return PaymentOutcome(
                status=OutcomeStatus.NO_PENDING_PAYMENT,
                initiator_identity=initiator_identity,
                error=error,
            )

        logger.info(f"@{cancelled.initiator_handle} cancelled payment to @{cancelled.recipient_handle}")
        return PaymentOutcome(
            status=OutcomeStatus.CANCELLED,
            initiator_identity=initiator_identity,
            recipient_handle=cancelled.recipient_handle,
            amount_decimal=cancelled.amount_decimal,
        )

    # ─── Confirm ─────────────────────────────────────────────────────

    async def confirm_payment(
        self,
        initiator_identity: Hashable,
        on_progress: ProgressCallback | None = None,
    ) -> PaymentOutcome:
        """
        Execute the initiator's proposal.

        Returns SETTLED (with tx_hash), FAILED, NO_PENDING_PAYMENT or
        PAYMENT_EXPIRED. The pending record is removed whatever the result.
        """
        try:
            pending = await self._store.confirm(initiator_identity)
        except PaymentExpiredError:
            return PaymentOutcome(
                status=OutcomeStatus.PAYMENT_EXPIRED,
                initiator_identity=initiator_identity,
                error="Payment expired. Please start over with /pay",
            )
        except NoPendingPaymentError:
            return PaymentOutcome(
                status=OutcomeStatus.NO_PENDING_PAYMENT,
                initiator_identity=initiator_identity,
                error="No pending payment",
            )

        try:
            return await self._execute(pending, on_progress)
        except asyncio.CancelledError:
            await self._store.fail(initiator_identity, pending.id, reason="cancelled")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error executing payment {pending.id}")
            return await self._failed(pending, FailureKind.UNEXPECTED_ERROR, str(e))

    async def _execute(
        self,
        pending: PendingPayment,
        on_progress: ProgressCallback | None,
    ) -> PaymentOutcome:
        recipient_info = await self._resolve_optional(pending.recipient_handle)
        await self._notify(
            on_progress,
            PaymentProgress(
                stage=ProgressStage.RECIPIENT_RESOLVED,
                initiator_identity=pending.initiator_identity,
                recipient_handle=pending.recipient_handle,
                recipient_info=recipient_info,
            ),
        )

        try:
            intent = PaymentIntent(
                handle=pending.recipient_handle,
                platform=self._platform,
                amount=parse_positive_units(pending.amount_decimal, self._token_decimals),
                async_nonce=self._signer.generate_nonce(),
                deadline=self._signer.generate_deadline(self._deadline_window_minutes),
            )
        except ValidationError as e:
            return await self._failed(
                pending, FailureKind.INVALID_INTENT, e.message, recipient_info=recipient_info
            )

        logger.debug(
            f"Payment details: handle={intent.handle} amount={intent.amount} "
            f"nonce={intent.async_nonce} deadline={intent.deadline}"
        )

        try:
            domain_separator = await self._ledger.get_domain_separator()
        except LedgerUnavailableError as e:
            return await self._failed(
                pending, FailureKind.SIGNING_ABORTED, f"Could not fetch domain separator: {e.message}",
                recipient_info=recipient_info,
            )

        if not self._builder.domain_matches(domain_separator):
            logger.warning(
                "Contract domain separator differs from the configured EIP-712 domain; "
                "signing against the contract's separator"
            )

        try:
            signed = self._signer.sign_intent(
                intent,
                self._builder.verifying_contract,
                self._builder.chain_id,
                domain_separator,
            )
        except (SigningError, ValidationError) as e:
            return await self._failed(
                pending, FailureKind.SIGNING_ERROR, e.message, recipient_info=recipient_info
            )

        await self._notify(
            on_progress,
            PaymentProgress(
                stage=ProgressStage.SIGNED,
                initiator_identity=pending.initiator_identity,
                recipient_handle=pending.recipient_handle,
                recipient_info=recipient_info,
            ),
        )

        try:
            tx_hash = await self._ledger.pay_to_handle_with_signature(signed)
        except SubmissionError as e:
            return await self._failed(
                pending, FailureKind.SUBMISSION_FAILURE, e.reason,
                recipient_info=recipient_info, signed_intent=signed,
            )

        await self._store.record_transaction(pending.initiator_identity, pending.id, tx_hash)
        await self._notify(
            on_progress,
            PaymentProgress(
                stage=ProgressStage.SUBMITTED,
                initiator_identity=pending.initiator_identity,
                recipient_handle=pending.recipient_handle,
                recipient_info=recipient_info,
                tx_hash=tx_hash,
            ),
        )

        try:
            receipt = await self._ledger.wait_for_receipt(tx_hash)
        except SubmissionError as e:
            return await self._failed(
                pending, FailureKind.SUBMISSION_FAILURE, e.reason,
                recipient_info=recipient_info, signed_intent=signed, tx_hash=tx_hash,
            )

        if not receipt.succeeded:
            return await self._failed(
                pending, FailureKind.TRANSACTION_REVERTED, "Transaction failed",
                recipient_info=recipient_info, signed_intent=signed, tx_hash=receipt.tx_hash,
            )

        await self._store.settle(pending.initiator_identity, pending.id)
        logger.info(
            f"Payment settled: {pending.amount_decimal} from @{pending.initiator_handle} "
            f"to @{pending.recipient_handle} tx={receipt.tx_hash}"
        )
        return PaymentOutcome(
            status=OutcomeStatus.SETTLED,
            initiator_identity=pending.initiator_identity,
            recipient_handle=pending.recipient_handle,
            amount_decimal=pending.amount_decimal,
            tx_hash=receipt.tx_hash,
            recipient_info=recipient_info,
            signed_intent=signed,
            metadata={"block_number": receipt.block_number, "gas_used": receipt.gas_used},
        )

    # ─── Read-only Lookups ───────────────────────────────────────────

    async def check_handle(self, handle: str | None) -> HandleCheckResult:
        """Look up a handle's claim status and pending balance."""
        try:
            normalized = normalize_handle(handle)
        except ValidationError as e:
            return HandleCheckResult(handle=handle or "", error=e.message)
        try:
            info = await self._resolver.resolve(normalized, self._platform)
        except LedgerUnavailableError as e:
            return HandleCheckResult(handle=normalized, error=e.message)
        return HandleCheckResult(handle=normalized, info=info)

    async def check_balance(self, initiator_handle: str | None) -> HandleCheckResult:
        """Look up the initiator's own handle (what /balance and /claim show)."""
        if not (initiator_handle or "").strip():
            return HandleCheckResult(handle="", error="A username is required to check a balance")
        return await self.check_handle(initiator_handle)

    # ─── Helpers ─────────────────────────────────────────────────────

    async def _resolve_optional(self, handle: str) -> HandleInfo | None:
        """Best-effort recipient lookup; failure only drops the claim hint."""
        try:
            return await self._resolver.resolve(handle, self._platform)
        except (LedgerUnavailableError, ValidationError) as e:
            logger.warning(f"Recipient lookup for @{handle} failed, continuing: {e}")
            return None

    async def _notify(self, on_progress: ProgressCallback | None, progress: PaymentProgress) -> None:
        if on_progress is None:
            return
        try:
            await on_progress(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed at {progress.stage.value}: {e}")

    async def _failed(
        self,
        pending: PendingPayment,
        failure: FailureKind,
        error: str,
        recipient_info: HandleInfo | None = None,
        signed_intent=None,
        tx_hash: str | None = None,
    ) -> PaymentOutcome:
        await self._store.fail(pending.initiator_identity, pending.id, reason=error)
        logger.error(
            f"Payment {pending.id} to @{pending.recipient_handle} failed ({failure.value}): {error}"
        )
        return PaymentOutcome(
            status=OutcomeStatus.FAILED,
            initiator_identity=pending.initiator_identity,
            recipient_handle=pending.recipient_handle,
            amount_decimal=pending.amount_decimal,
            tx_hash=tx_hash,
            failure=failure,
            error=error,
            recipient_info=recipient_info,
            signed_intent=signed_intent,
        )

    @staticmethod
    def _rejected(
        initiator_identity: Hashable | None,
        reason: RejectionReason,
        error: str,
        recipient_handle: str | None = None,
    ) -> PaymentOutcome:
        return PaymentOutcome(
            status=OutcomeStatus.REJECTED,
            initiator_identity=initiator_identity,
            recipient_handle=recipient_handle,
            rejection=reason,
            error=error,
        )
