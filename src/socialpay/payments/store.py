"""
PendingPaymentStore - Manages the lifecycle of pending payments.

Holds at most one payment per initiator identity between /pay and /confirm:

    none ─propose→ PROPOSED ─confirm→ CONFIRMED ─tx→ SUBMITTED ─settle→ SETTLED → none
                       │                   └─fail→ none      └─fail→ none
                       ├─cancel→ CANCELLED → none
                       └─confirm after TTL→ EXPIRED → none

State is in memory only and lost on restart.
"""

from __future__ import annotations

import threading
import time
import uuid
from copy import deepcopy
from typing import Callable, Hashable

from socialpay.core.exceptions import (
    NoPendingPaymentError,
    PaymentExpiredError,
    PaymentInFlightError,
)
from socialpay.core.logging import get_logger
from socialpay.core.types import PendingPayment, PendingPaymentState

logger = get_logger("payments.store")

DEFAULT_PROPOSAL_TTL_SECONDS = 300.0


class PendingPaymentStore:
    """
    Keyed table of pending payments, one per initiator identity.

    Every transition runs in a short critical section, so confirm is an
    atomic check-and-set: of two concurrent confirms for the same initiator,
    exactly one gets the record. No lock is held across I/O, and records of
    different initiators never wait on each other beyond a dict update.
    Records handed out are copies; the store is their only owner.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_PROPOSAL_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            ttl_seconds: How long a proposed payment stays confirmable
            clock: Wall clock in Unix seconds (injectable for tests)
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._records: dict[Hashable, PendingPayment] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, initiator_identity: Hashable) -> bool:
        return initiator_identity in self._records

    def _is_expired(self, record: PendingPayment, now: float) -> bool:
        return record.age(now) > self._ttl

    async def propose(
        self,
        initiator_identity: Hashable,
        initiator_handle: str,
        recipient_handle: str,
        amount_decimal: str,
    ) -> PendingPayment:
        """
        Store a new proposed payment, replacing any earlier proposal.

        Raises:
            PaymentInFlightError: If the initiator's previous payment is
                confirmed or submitted
        """
        with self._lock:
            current = self._records.get(initiator_identity)
            if current is not None and current.state in (
                PendingPaymentState.CONFIRMED,
                PendingPaymentState.SUBMITTED,
            ):
                raise PaymentInFlightError(
                    "A payment is already being processed",
                    initiator_identity=initiator_identity,
                    details={"payment_id": current.id},
                )

            record = PendingPayment(
                id=str(uuid.uuid4()),
                initiator_identity=initiator_identity,
                initiator_handle=initiator_handle,
                recipient_handle=recipient_handle,
                amount_decimal=amount_decimal,
                created_at=self._clock(),
            )
            self._records[initiator_identity] = record

        if current is not None:
            logger.debug(f"Replaced proposal {current.id} for {initiator_identity!r}")
        logger.debug(
            f"Proposed {amount_decimal} to @{recipient_handle} for {initiator_identity!r} ({record.id})"
        )
        return deepcopy(record)

    async def get(self, initiator_identity: Hashable) -> PendingPayment | None:
        """Get a copy of the initiator's record."""
        with self._lock:
            record = self._records.get(initiator_identity)
            return deepcopy(record) if record else None

    async def cancel(self, initiator_identity: Hashable) -> PendingPayment | None:
        """
        Cancel a proposed payment.

        Returns:
            The cancelled record, or None if nothing was proposed. Submitted
            payments are in flight and cannot be cancelled.
        """
        with self._lock:
            record = self._records.get(initiator_identity)
            if record is None or record.state != PendingPaymentState.PROPOSED:
                return None
            del self._records[initiator_identity]
            record.state = PendingPaymentState.CANCELLED

        logger.debug(f"Cancelled payment {record.id} for {initiator_identity!r}")
        return record

    async def confirm(self, initiator_identity: Hashable) -> PendingPayment:
        """
        Claim the initiator's proposal for execution.

        Moves PROPOSED → CONFIRMED in one critical section, so a concurrent
        confirm finds nothing to claim. CONFIRMED counts as in flight.

        Raises:
            NoPendingPaymentError: If there is no PROPOSED record
            PaymentExpiredError: If the proposal is older than the TTL (it is removed)
        """
        with self._lock:
            record = self._records.get(initiator_identity)
            if record is None or record.state != PendingPaymentState.PROPOSED:
                raise NoPendingPaymentError(
                    "No pending payment", initiator_identity=initiator_identity
                )

            now = self._clock()
            if self._is_expired(record, now):
                del self._records[initiator_identity]
                record.state = PendingPaymentState.EXPIRED
                age = record.age(now)
            else:
                record.confirmed_at = now
                record.state = PendingPaymentState.CONFIRMED
                return deepcopy(record)

        logger.info(f"Payment {record.id} for {initiator_identity!r} expired after {age:.0f}s")
        raise PaymentExpiredError(
            "Payment expired", initiator_identity=initiator_identity, age_seconds=age
        )

    async def record_transaction(
        self, initiator_identity: Hashable, payment_id: str, tx_hash: str
    ) -> bool:
        """Attach the broadcast transaction hash and mark the record SUBMITTED."""
        with self._lock:
            record = self._records.get(initiator_identity)
            if record is None or record.id != payment_id:
                return False
            record.tx_hash = tx_hash
            record.state = PendingPaymentState.SUBMITTED
            return True

    async def settle(self, initiator_identity: Hashable, payment_id: str) -> PendingPayment | None:
        """Mark an in-flight payment settled and remove it."""
        record = self._finish(initiator_identity, payment_id)
        if record is None:
            return None
        record.state = PendingPaymentState.SETTLED
        logger.debug(f"Settled payment {payment_id} for {initiator_identity!r}")
        return record

    async def fail(
        self, initiator_identity: Hashable, payment_id: str, reason: str | None = None
    ) -> PendingPayment | None:
        """Drop an in-flight payment after a failed submission."""
        record = self._finish(initiator_identity, payment_id)
        if record is not None:
            logger.debug(f"Dropped payment {payment_id} for {initiator_identity!r}: {reason}")
        return record

    def _finish(self, initiator_identity: Hashable, payment_id: str) -> PendingPayment | None:
        # Match on id so a late completion never removes a newer record
        with self._lock:
            record = self._records.get(initiator_identity)
            if record is None or record.id != payment_id:
                return None
            del self._records[initiator_identity]
            return record

    async def purge_expired(self) -> int:
        """Remove proposals past the TTL. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, record in self._records.items()
                if record.state == PendingPaymentState.PROPOSED and self._is_expired(record, now)
            ]
            for key in expired:
                del self._records[key]

        if expired:
            logger.debug(f"Purged {len(expired)} expired proposals")
        return len(expired)
