"""
SocialPay Ledger Client - JSON-RPC binding of the SocialPay contract.

Uses ``eth_call`` via httpx for reads and a locally signed
``eth_sendRawTransaction`` for ``payToHandleWithSignature``. No web3.py
dependency: calldata is built with eth_abi and transactions are signed
with eth_account.

For fallback, pass comma-separated URLs:
    LedgerClient(contract, rpc_url="https://alchemy.com/v2/KEY,https://infura.io/v3/KEY", ...)
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from socialpay.core.exceptions import (
    ConfigurationError,
    LedgerUnavailableError,
    SubmissionError,
    TransactionTimeoutError,
)
from socialpay.core.logging import get_logger
from socialpay.core.types import SignedIntent, TransactionReceipt
from socialpay.resilience.retry import DEFAULT_READ_ATTEMPTS, execute_with_retry

logger = get_logger("ledger.client")

# Error(string) selector used by Solidity require/revert messages
_ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")


class JsonRpcError(Exception):
    """The node answered the request with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    @property
    def revert_reason(self) -> str:
        """Best human-readable reason, decoding Error(string) payloads."""
        data = self.data
        if isinstance(data, dict):
            data = data.get("data")
        if isinstance(data, str) and data.startswith("0x"):
            raw = bytes.fromhex(data[2:])
            if raw[:4] == _ERROR_STRING_SELECTOR:
                try:
                    (reason,) = decode(["string"], raw[4:])
                    return reason
                except Exception:
                    logger.debug("Undecodable revert payload")
        return self.message


class LedgerClient:
    """
    Client for the SocialPay contract surface.

    Reads:
        isHandleClaimed(string,string) -> (bool, address)
        getPendingBalance(string,string) -> uint256
        getDomainSeparator() -> bytes32

    Writes (signed and paid for by the executor key):
        payToHandleWithSignature(string,string,uint256,uint256,uint256,bytes)
    """

    RPC_TIMEOUT = 30.0  # seconds per JSON-RPC call
    GAS_HEADROOM_PERCENT = 20

    def __init__(
        self,
        contract_address: str,
        rpc_url: str,
        chain_id: int,
        executor_private_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        request_timeout: float = RPC_TIMEOUT,
        receipt_poll_interval: float = 2.0,
        receipt_timeout: float = 120.0,
        read_attempts: int = DEFAULT_READ_ATTEMPTS,
    ) -> None:
        """
        Args:
            contract_address: SocialPay contract address
            rpc_url: RPC endpoint URL(s), comma-separated for fallback
            chain_id: Chain ID used when signing transactions
            executor_private_key: Key paying gas for submissions (reads work without it)
            http_client: Shared httpx client (for connection pooling)
            request_timeout: Per-request timeout in seconds
            receipt_poll_interval: Seconds between receipt polls
            receipt_timeout: Seconds to wait for a receipt
            read_attempts: Attempts per endpoint for transient read failures
        """
        self.contract_address = to_checksum_address(contract_address)
        self.chain_id = chain_id
        self._rpc_urls: list[str] = [u.strip() for u in rpc_url.split(",") if u.strip()]
        if not self._rpc_urls:
            raise ConfigurationError("At least one RPC URL is required")

        self._executor = None
        if executor_private_key:
            try:
                self._executor = Account.from_key(executor_private_key)
            except Exception:
                raise ConfigurationError("Invalid executor private key") from None

        self._http_client = http_client
        self._owns_client = False
        self._request_timeout = request_timeout
        self._receipt_poll_interval = receipt_poll_interval
        self._receipt_timeout = receipt_timeout
        self._read_attempts = read_attempts
        self._request_id = 0
        # Serializes executor nonce assignment and broadcast only
        self._send_lock = asyncio.Lock()

    @property
    def executor_address(self) -> str | None:
        return self._executor.address if self._executor else None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._request_timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ─── JSON-RPC with Multi-Provider Fallback ───────────────────────

    async def _post(self, rpc_url: str, payload: dict[str, Any]) -> Any:
        client = await self._get_client()
        response = await client.post(rpc_url, json=payload)
        response.raise_for_status()
        body = response.json()
        if "error" in body:
            err = body["error"] or {}
            raise JsonRpcError(err.get("code"), str(err.get("message", "")), err.get("data"))
        return body.get("result")

    async def _rpc(
        self,
        method: str,
        params: list[Any],
        attempts: int | None = None,
        fallback: bool = True,
    ) -> Any:
        """
        Execute a JSON-RPC request.

        Transient failures are retried per endpoint, then the next endpoint is
        tried. A JSON-RPC error object is the node's answer and is raised as
        JsonRpcError without falling back.

        Raises:
            JsonRpcError: The node rejected the request
            LedgerUnavailableError: No endpoint produced an answer
        """
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}
        urls = self._rpc_urls if fallback else self._rpc_urls[:1]
        attempts = self._read_attempts if attempts is None else attempts

        last_error: Exception | None = None
        for i, rpc_url in enumerate(urls):
            try:
                return await execute_with_retry(self._post, rpc_url, payload, attempts=attempts)
            except JsonRpcError:
                raise
            except httpx.TimeoutException as e:
                logger.warning(
                    f"RPC timeout from provider {i + 1}/{len(urls)} for {method}: "
                    f"{'falling back' if i < len(urls) - 1 else 'no more providers'}"
                )
                last_error = e
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"RPC HTTP {e.response.status_code} from provider {i + 1}/{len(urls)} for {method}"
                )
                last_error = e
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"RPC error from provider {i + 1}/{len(urls)} for {method}: {e}")
                last_error = e

        raise LedgerUnavailableError(
            f"All {len(urls)} RPC providers failed for {method}: {last_error}",
            method=method,
        )

    async def _call(
        self,
        function_sig: str,
        arg_types: list[str],
        args: list[Any],
        output_types: list[str],
    ) -> tuple[Any, ...]:
        """eth_call a view function and ABI-decode its return values."""
        data = "0x" + (function_signature_to_4byte_selector(function_sig) + encode(arg_types, args)).hex()
        try:
            result = await self._rpc("eth_call", [{"to": self.contract_address, "data": data}, "latest"])
        except JsonRpcError as e:
            raise LedgerUnavailableError(
                f"{function_sig} reverted: {e.revert_reason}", method=function_sig
            ) from e
        except LedgerUnavailableError as e:
            raise LedgerUnavailableError(str(e.message), method=function_sig) from e

        if not isinstance(result, str) or not result.startswith("0x") or result == "0x":
            raise LedgerUnavailableError(f"Empty result from {function_sig}", method=function_sig)
        try:
            return decode(output_types, bytes.fromhex(result[2:]))
        except Exception as e:
            raise LedgerUnavailableError(
                f"Failed to decode {function_sig} result: {e}", method=function_sig
            ) from e

    # ─── Contract Reads ──────────────────────────────────────────────

    async def is_handle_claimed(self, handle: str, platform: str) -> tuple[bool, str]:
        """Read isHandleClaimed(handle, platform) → (claimed, wallet)."""
        claimed, wallet = await self._call(
            "isHandleClaimed(string,string)", ["string", "string"], [handle, platform], ["bool", "address"]
        )
        return bool(claimed), to_checksum_address(wallet)

    async def get_pending_balance(self, handle: str, platform: str) -> int:
        """Read getPendingBalance(handle, platform) → base units."""
        (balance,) = await self._call(
            "getPendingBalance(string,string)", ["string", "string"], [handle, platform], ["uint256"]
        )
        return int(balance)

    async def get_domain_separator(self) -> bytes:
        """Read getDomainSeparator() → bytes32."""
        (separator,) = await self._call("getDomainSeparator()", [], [], ["bytes32"])
        return bytes(separator)

    # ─── Submission ──────────────────────────────────────────────────

    @staticmethod
    def encode_payment_call(signed: SignedIntent) -> str:
        """ABI-encode payToHandleWithSignature calldata for a signed intent."""
        intent = signed.intent
        selector = function_signature_to_4byte_selector(
            "payToHandleWithSignature(string,string,uint256,uint256,uint256,bytes)"
        )
        args = encode(
            ["string", "string", "uint256", "uint256", "uint256", "bytes"],
            [
                intent.handle,
                intent.platform,
                intent.amount,
                intent.async_nonce,
                intent.deadline,
                signed.signature.to_bytes(),
            ],
        )
        return "0x" + (selector + args).hex()

    async def pay_to_handle_with_signature(self, signed: SignedIntent) -> str:
        """
        Submit a signed payment intent.

        Gas is estimated first, so contract-level rejections (reused nonce,
        expired deadline, insufficient balance, bad signature) surface here
        with the contract's reason. The broadcast itself is not retried.

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            SubmissionError: If estimation or broadcast fails
        """
        if self._executor is None:
            raise SubmissionError(
                "No executor key configured for submissions", method="eth_sendRawTransaction"
            )

        data = self.encode_payment_call(signed)
        sender = self._executor.address
        call = {"from": sender, "to": self.contract_address, "data": data}

        try:
            gas_estimate = int(await self._rpc("eth_estimateGas", [call]), 16)
            gas_price = int(await self._rpc("eth_gasPrice", []), 16)
        except JsonRpcError as e:
            raise SubmissionError(
                "Payment rejected during gas estimation",
                reason=e.revert_reason,
                method="eth_estimateGas",
            ) from e
        except LedgerUnavailableError as e:
            raise SubmissionError(
                "Ledger unavailable while preparing submission", reason=e.message, method=e.method
            ) from e

        gas_limit = gas_estimate * (100 + self.GAS_HEADROOM_PERCENT) // 100

        async with self._send_lock:
            try:
                nonce = int(await self._rpc("eth_getTransactionCount", [sender, "pending"]), 16)
            except (JsonRpcError, LedgerUnavailableError) as e:
                raise SubmissionError(
                    "Could not fetch executor nonce", reason=str(e), method="eth_getTransactionCount"
                ) from e

            tx = {
                "to": self.contract_address,
                "data": data,
                "value": 0,
                "gas": gas_limit,
                "gasPrice": gas_price,
                "nonce": nonce,
                "chainId": self.chain_id,
            }
            signed_tx = self._executor.sign_transaction(tx)
            raw_tx = "0x" + bytes(signed_tx.raw_transaction).hex()

            try:
                tx_hash = await self._rpc(
                    "eth_sendRawTransaction", [raw_tx], attempts=1, fallback=False
                )
            except JsonRpcError as e:
                raise SubmissionError(
                    "Ledger rejected the transaction",
                    reason=e.revert_reason,
                    method="eth_sendRawTransaction",
                ) from e
            except LedgerUnavailableError as e:
                raise SubmissionError(
                    "Broadcast failed", reason=e.message, method="eth_sendRawTransaction"
                ) from e

        logger.info(
            f"Submitted payment to @{signed.intent.handle} "
            f"(nonce={signed.intent.async_nonce}) tx={tx_hash}"
        )
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """Fetch a receipt, or None while the transaction is pending."""
        try:
            result = await self._rpc("eth_getTransactionReceipt", [tx_hash])
        except JsonRpcError as e:
            raise LedgerUnavailableError(
                f"Receipt lookup failed: {e.message}", method="eth_getTransactionReceipt"
            ) from e
        if not result:
            return None
        return TransactionReceipt.from_rpc(result)

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> TransactionReceipt:
        """
        Poll until the transaction is mined.

        Raises:
            TransactionTimeoutError: If no receipt appears within ``timeout``
        """
        timeout = self._receipt_timeout if timeout is None else timeout
        poll_interval = self._receipt_poll_interval if poll_interval is None else poll_interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except LedgerUnavailableError as e:
                logger.debug(f"Receipt poll for {tx_hash} failed: {e}")
                receipt = None
            if receipt is not None:
                return receipt

            if loop.time() >= deadline:
                raise TransactionTimeoutError(
                    f"No receipt for {tx_hash} after {timeout}s",
                    tx_hash=tx_hash,
                    timeout_seconds=timeout,
                )
            await asyncio.sleep(poll_interval)


__all__ = [
    "JsonRpcError",
    "LedgerClient",
]
