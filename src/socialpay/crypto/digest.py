"""
EIP-712 digest construction for SocialPay payment intents.

The digest is what the signing key signs and what the SocialPay contract
recomputes in ``payToHandleWithSignature``:

    typeHash   = keccak256("PaymentIntent(string handle,string platform,uint256 amount,uint256 asyncNonce,uint256 deadline)")
    structHash = keccak256(abi.encode(typeHash, keccak256(handle), keccak256(platform), amount, asyncNonce, deadline))
    digest     = keccak256(0x1901 || domainSeparator || structHash)

The domain separator used for signing is always the one reported by the
contract (``getDomainSeparator()``). The local computation below exists to
build full typed-data payloads and to detect a domain that drifted from the
configured name/version/chain/contract.
"""

from __future__ import annotations

from typing import Any

from eth_abi import encode
from eth_utils import is_address, keccak, to_checksum_address

from socialpay.core.exceptions import ValidationError
from socialpay.core.types import PaymentIntent

PAYMENT_INTENT_TYPE = (
    "PaymentIntent(string handle,string platform,uint256 amount,uint256 asyncNonce,uint256 deadline)"
)
PAYMENT_INTENT_TYPEHASH: bytes = keccak(text=PAYMENT_INTENT_TYPE)

EIP712_DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
EIP712_DOMAIN_TYPEHASH: bytes = keccak(text=EIP712_DOMAIN_TYPE)

EIP712_PREFIX = b"\x19\x01"

DEFAULT_DOMAIN_NAME = "SocialPayEVVM"
DEFAULT_DOMAIN_VERSION = "1"

# Field layout for eth_account's encode_typed_data
TYPED_DATA_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "PaymentIntent": [
        {"name": "handle", "type": "string"},
        {"name": "platform", "type": "string"},
        {"name": "amount", "type": "uint256"},
        {"name": "asyncNonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}


def _check_domain(verifying_contract: str, chain_id: int) -> str:
    if not is_address(verifying_contract):
        raise ValidationError(
            f"Invalid verifying contract address: {verifying_contract}",
            field="verifying_contract",
        )
    if chain_id <= 0:
        raise ValidationError("chain_id must be positive", field="chain_id")
    return to_checksum_address(verifying_contract)


def hash_struct(intent: PaymentIntent) -> bytes:
    """Return the EIP-712 struct hash of a payment intent."""
    # Strings are hashed as raw UTF-8; normalizing them would break
    # verification against the contract's own hash.
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "uint256", "uint256"],
            [
                PAYMENT_INTENT_TYPEHASH,
                keccak(intent.handle.encode("utf-8")),
                keccak(intent.platform.encode("utf-8")),
                intent.amount,
                intent.async_nonce,
                intent.deadline,
            ],
        )
    )


def build_digest(
    intent: PaymentIntent,
    verifying_contract: str,
    chain_id: int,
    domain_separator: bytes,
) -> bytes:
    """
    Build the 32-byte digest a signer must sign to authorize ``intent``.

    Args:
        intent: The payment intent
        verifying_contract: SocialPay contract address
        chain_id: Chain the contract lives on
        domain_separator: 32-byte separator fetched from the contract

    Returns:
        keccak256(0x1901 || domain_separator || hash_struct(intent))

    Raises:
        ValidationError: If the domain separator is not 32 bytes or the
            contract/chain are invalid
    """
    _check_domain(verifying_contract, chain_id)
    if not isinstance(domain_separator, (bytes, bytearray)) or len(domain_separator) != 32:
        raise ValidationError("Domain separator must be exactly 32 bytes", field="domain_separator")
    return keccak(EIP712_PREFIX + bytes(domain_separator) + hash_struct(intent))


def compute_domain_separator(
    verifying_contract: str,
    chain_id: int,
    name: str = DEFAULT_DOMAIN_NAME,
    version: str = DEFAULT_DOMAIN_VERSION,
) -> bytes:
    """Compute the EIP-712 domain separator locally."""
    contract = _check_domain(verifying_contract, chain_id)
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=name),
                keccak(text=version),
                chain_id,
                contract,
            ],
        )
    )


def domain_matches(
    domain_separator: bytes,
    verifying_contract: str,
    chain_id: int,
    name: str = DEFAULT_DOMAIN_NAME,
    version: str = DEFAULT_DOMAIN_VERSION,
) -> bool:
    """Check a fetched domain separator against the configured domain."""
    return bytes(domain_separator) == compute_domain_separator(
        verifying_contract, chain_id, name, version
    )


def build_typed_data(
    intent: PaymentIntent,
    verifying_contract: str,
    chain_id: int,
    name: str = DEFAULT_DOMAIN_NAME,
    version: str = DEFAULT_DOMAIN_VERSION,
) -> dict[str, Any]:
    """
    Build the full EIP-712 typed-data structure for ``intent``.

    Suitable for ``eth_account.messages.encode_typed_data(full_message=...)``
    and for wallets implementing ``eth_signTypedData_v4``.
    """
    contract = _check_domain(verifying_contract, chain_id)
    return {
        "types": TYPED_DATA_TYPES,
        "primaryType": "PaymentIntent",
        "domain": {
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": contract,
        },
        "message": intent.to_message(),
    }


class IntentDigestBuilder:
    """
    Digest builder bound to one SocialPay contract deployment.

    Example:
        >>> builder = IntentDigestBuilder("0x5FbDB2315678afecb367f032d93F642f64180aa3", 11155111)
        >>> digest = builder.build_digest(intent, domain_separator)
    """

    def __init__(
        self,
        verifying_contract: str,
        chain_id: int,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        domain_version: str = DEFAULT_DOMAIN_VERSION,
    ) -> None:
        self.verifying_contract = _check_domain(verifying_contract, chain_id)
        self.chain_id = chain_id
        self.domain_name = domain_name
        self.domain_version = domain_version

    def build_digest(self, intent: PaymentIntent, domain_separator: bytes) -> bytes:
        return build_digest(intent, self.verifying_contract, self.chain_id, domain_separator)

    def typed_data(self, intent: PaymentIntent) -> dict[str, Any]:
        return build_typed_data(
            intent, self.verifying_contract, self.chain_id, self.domain_name, self.domain_version
        )

    def local_domain_separator(self) -> bytes:
        return compute_domain_separator(
            self.verifying_contract, self.chain_id, self.domain_name, self.domain_version
        )

    def domain_matches(self, domain_separator: bytes) -> bool:
        return bytes(domain_separator) == self.local_domain_separator()
