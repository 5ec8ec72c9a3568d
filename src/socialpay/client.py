"""SocialPay - Main entry point for transports (chat bots, CLIs)."""

from __future__ import annotations

from typing import Any, Hashable

import httpx

from socialpay.core.config import Config
from socialpay.core.logging import configure_logging, get_logger
from socialpay.core.types import HandleCheckResult, PaymentOutcome
from socialpay.crypto.signer import SignatureGenerator
from socialpay.identity.resolver import HandleResolver
from socialpay.ledger.client import LedgerClient
from socialpay.payments.orchestrator import PaymentOrchestrator, ProgressCallback
from socialpay.payments.store import PendingPaymentStore


class SocialPay:
    """
    Main client for SocialPay.

    Wires the ledger client, handle resolver, signer, pending-payment store
    and orchestrator from one Config, and exposes the command surface a
    transport renders:

        async with SocialPay(config) as pay:
            await pay.request_payment(user_id, "bob", "@alice", "10")
            outcome = await pay.confirm_payment(user_id)
    """

    def __init__(
        self,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        store: PendingPaymentStore | None = None,
        configure_logs: bool = True,
        **overrides: Any,
    ) -> None:
        """
        Initialize SocialPay.

        Args:
            config: Configuration; loaded with Config.from_env(**overrides) if omitted
            http_client: Shared httpx client for JSON-RPC calls
            store: Pending-payment store (a fresh in-memory store by default)
            configure_logs: Configure the socialpay logger from config.log_level
        """
        self._config = config or Config.from_env(**overrides)

        if configure_logs:
            configure_logging(level=self._config.log_level)
        self._logger = get_logger("client")
        self._logger.info(
            f"Initializing SocialPay (chain {self._config.chain_id}, "
            f"contract {self._config.contract_address}, platform {self._config.platform})"
        )

        self._ledger = LedgerClient(
            contract_address=self._config.contract_address,
            rpc_url=self._config.rpc_url,
            chain_id=self._config.chain_id,
            executor_private_key=self._config.executor_key,
            http_client=http_client,
            request_timeout=self._config.request_timeout,
            receipt_poll_interval=self._config.receipt_poll_interval,
            receipt_timeout=self._config.receipt_timeout,
        )
        self._signer = SignatureGenerator(self._config.signer_private_key)
        self._resolver = HandleResolver(
            self._ledger,
            platform=self._config.platform,
            token_decimals=self._config.token_decimals,
        )
        self._store = (
            store if store is not None else PendingPaymentStore(ttl_seconds=self._config.proposal_ttl_seconds)
        )
        self._orchestrator = PaymentOrchestrator(
            store=self._store,
            resolver=self._resolver,
            signer=self._signer,
            ledger=self._ledger,
            verifying_contract=self._config.contract_address,
            chain_id=self._config.chain_id,
            platform=self._config.platform,
            token_decimals=self._config.token_decimals,
            deadline_window_minutes=self._config.deadline_window_minutes,
            domain_name=self._config.domain_name,
            domain_version=self._config.domain_version,
        )
        self._logger.info(f"Signer: {self._signer.address}, executor: {self._ledger.executor_address}")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def signer_address(self) -> str:
        return self._signer.address

    @property
    def store(self) -> PendingPaymentStore:
        """Get the pending-payment store."""
        return self._store

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    @property
    def orchestrator(self) -> PaymentOrchestrator:
        return self._orchestrator

    async def __aenter__(self) -> SocialPay:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit: clean up resources."""
        await self.close()

    async def close(self) -> None:
        await self._ledger.close()

    # ─── Command Surface ─────────────────────────────────────────────

    async def request_payment(
        self,
        initiator_identity: Hashable | None,
        initiator_handle: str | None,
        recipient: str | None,
        amount_decimal: str | None,
    ) -> PaymentOutcome:
        """/pay @recipient amount"""
        return await self._orchestrator.request_payment(
            initiator_identity, initiator_handle, recipient, amount_decimal
        )

    async def confirm_payment(
        self,
        initiator_identity: Hashable,
        on_progress: ProgressCallback | None = None,
    ) -> PaymentOutcome:
        """/confirm"""
        return await self._orchestrator.confirm_payment(initiator_identity, on_progress=on_progress)

    async def cancel_payment(self, initiator_identity: Hashable) -> PaymentOutcome:
        """/cancel"""
        return await self._orchestrator.cancel_payment(initiator_identity)

    async def check_handle(self, handle: str | None) -> HandleCheckResult:
        """/check @handle"""
        return await self._orchestrator.check_handle(handle)

    async def check_balance(self, initiator_handle: str | None) -> HandleCheckResult:
        """/balance and /claim"""
        return await self._orchestrator.check_balance(initiator_handle)

    def claim_portal_url(self) -> str:
        """Where unclaimed handles go to link a wallet and withdraw."""
        return self._config.claim_portal_url
