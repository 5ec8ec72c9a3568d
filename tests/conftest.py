import json
from unittest.mock import AsyncMock

import httpx
import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from socialpay.core.exceptions import LedgerUnavailableError
from socialpay.core.types import TransactionReceipt
from socialpay.crypto.digest import compute_domain_separator
from socialpay.crypto.signer import SignatureGenerator
from socialpay.identity.resolver import HandleResolver
from socialpay.ledger.client import JsonRpcError
from socialpay.payments.orchestrator import PaymentOrchestrator
from socialpay.payments.store import PendingPaymentStore

# Well-known development key (Hardhat/Anvil account #0); never holds real funds
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
CHAIN_ID = 11155111
TX_HASH = "0x" + "ab" * 32
START_TIME = 1_700_000_000.0


def selector(signature: str) -> str:
    return "0x" + function_signature_to_4byte_selector(signature).hex()


def revert_data(reason: str) -> str:
    return "0x08c379a0" + encode(["string"], [reason]).hex()


class FakeNode:
    """Minimal JSON-RPC node serving the SocialPay contract."""

    def __init__(self, domain_separator: bytes) -> None:
        self.domain_separator = domain_separator
        self.claimed = (False, "0x" + "0" * 40)
        self.pending_balance = 0
        self.receipt_after = 0
        self.receipt_status = "0x1"
        self.estimate_error = None
        self.down_hosts: set[str] = set()
        self.calls: list[tuple[str, str, list]] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host in self.down_hosts:
            return httpx.Response(503, json={"error": "unavailable"})

        payload = json.loads(request.content)
        method, params = payload["method"], payload["params"]
        self.calls.append((host, method, params))

        try:
            result = self.dispatch(method, params)
        except JsonRpcError as e:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "error": {"code": e.code, "message": e.message, "data": e.data},
                },
            )
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def dispatch(self, method: str, params: list):
        if method == "eth_call":
            data = params[0]["data"]
            if data.startswith(selector("isHandleClaimed(string,string)")):
                return "0x" + encode(["bool", "address"], list(self.claimed)).hex()
            if data.startswith(selector("getPendingBalance(string,string)")):
                return "0x" + encode(["uint256"], [self.pending_balance]).hex()
            if data.startswith(selector("getDomainSeparator()")):
                return "0x" + self.domain_separator.hex()
            return "0x"
        if method == "eth_estimateGas":
            if self.estimate_error:
                raise JsonRpcError(3, "execution reverted", revert_data(self.estimate_error))
            return hex(100_000)
        if method == "eth_gasPrice":
            return hex(1_000_000_000)
        if method == "eth_getTransactionCount":
            return hex(5)
        if method == "eth_sendRawTransaction":
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.receipt_after > 0:
                self.receipt_after -= 1
                return None
            return {
                "transactionHash": params[0],
                "status": self.receipt_status,
                "blockNumber": hex(42),
                "gasUsed": hex(85_000),
            }
        raise JsonRpcError(-32601, f"method not found: {method}")

    def methods(self) -> list[str]:
        return [method for _, method, _ in self.calls]


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer(clock):
    return SignatureGenerator(SIGNER_KEY, clock=clock)


@pytest.fixture
def store(clock):
    return PendingPaymentStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def domain_separator():
    return compute_domain_separator(CONTRACT, CHAIN_ID)


@pytest.fixture
def mock_ledger(domain_separator):
    """LedgerClient stand-in for a healthy chain with an unclaimed recipient."""
    ledger = AsyncMock()
    ledger.is_handle_claimed.return_value = (False, "0x" + "0" * 40)
    ledger.get_pending_balance.return_value = 0
    ledger.get_domain_separator.return_value = domain_separator
    ledger.pay_to_handle_with_signature.return_value = TX_HASH
    ledger.wait_for_receipt.return_value = TransactionReceipt(
        tx_hash=TX_HASH, status=1, block_number=42, gas_used=85_000
    )
    return ledger


@pytest.fixture
def unavailable_ledger(mock_ledger):
    mock_ledger.is_handle_claimed.side_effect = LedgerUnavailableError("node down")
    mock_ledger.get_pending_balance.side_effect = LedgerUnavailableError("node down")
    mock_ledger.get_domain_separator.side_effect = LedgerUnavailableError("node down")
    return mock_ledger


@pytest.fixture
def resolver(mock_ledger):
    return HandleResolver(mock_ledger, platform="telegram")


@pytest.fixture
def orchestrator(store, resolver, signer, mock_ledger):
    return PaymentOrchestrator(
        store=store,
        resolver=resolver,
        signer=signer,
        ledger=mock_ledger,
        verifying_contract=CONTRACT,
        chain_id=CHAIN_ID,
        platform="telegram",
    )
