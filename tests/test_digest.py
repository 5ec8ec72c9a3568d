"""Unit tests for EIP-712 digest construction."""

from dataclasses import replace

import pytest
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from conftest import CHAIN_ID, CONTRACT
from socialpay.core.exceptions import ValidationError
from socialpay.core.types import PaymentIntent
from socialpay.crypto.digest import (
    EIP712_DOMAIN_TYPEHASH,
    PAYMENT_INTENT_TYPEHASH,
    IntentDigestBuilder,
    build_digest,
    build_typed_data,
    compute_domain_separator,
    domain_matches,
    hash_struct,
)


@pytest.fixture
def intent() -> PaymentIntent:
    return PaymentIntent(
        handle="alice",
        platform="telegram",
        amount=10_000000,
        async_nonce=1,
        deadline=2_000_000_000,
    )


class TestTypeHash:
    def test_typehash_matches_struct_definition(self) -> None:
        expected = keccak(
            b"PaymentIntent(string handle,string platform,uint256 amount,"
            b"uint256 asyncNonce,uint256 deadline)"
        )
        assert PAYMENT_INTENT_TYPEHASH == expected

    def test_domain_typehash_is_the_standard_constant(self) -> None:
        assert EIP712_DOMAIN_TYPEHASH.hex() == (
            "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"
        )


class TestBuildDigest:
    """Tests for build_digest."""

    def test_digest_is_32_bytes_and_deterministic(self, intent, domain_separator) -> None:
        first = build_digest(intent, CONTRACT, CHAIN_ID, domain_separator)
        second = build_digest(intent, CONTRACT, CHAIN_ID, domain_separator)

        assert len(first) == 32
        assert first == second

    def test_matches_eth_account_typed_data_encoding(self, intent, domain_separator) -> None:
        """The hand-built digest agrees with eth_account's EIP-712 encoder."""
        signable = encode_typed_data(full_message=build_typed_data(intent, CONTRACT, CHAIN_ID))

        assert signable.header == domain_separator
        assert signable.body == hash_struct(intent)
        assert build_digest(intent, CONTRACT, CHAIN_ID, domain_separator) == keccak(
            b"\x19\x01" + signable.header + signable.body
        )

    @pytest.mark.parametrize(
        "changes",
        [
            {"handle": "alicf"},
            {"platform": "discord"},
            {"amount": 10_000001},
            {"async_nonce": 2},
            {"deadline": 2_000_000_001},
        ],
    )
    def test_every_field_changes_the_digest(self, intent, domain_separator, changes) -> None:
        original = build_digest(intent, CONTRACT, CHAIN_ID, domain_separator)
        mutated = build_digest(replace(intent, **changes), CONTRACT, CHAIN_ID, domain_separator)

        assert original != mutated

    def test_domain_separator_changes_the_digest(self, intent, domain_separator) -> None:
        other = compute_domain_separator(CONTRACT, 1)

        assert build_digest(intent, CONTRACT, CHAIN_ID, domain_separator) != build_digest(
            intent, CONTRACT, CHAIN_ID, other
        )

    def test_non_ascii_handle_is_hashed_as_raw_utf8(self, domain_separator) -> None:
        composed = PaymentIntent("caf\u00e9", "telegram", 1, 1, 2_000_000_000)
        decomposed = PaymentIntent("cafe\u0301", "telegram", 1, 1, 2_000_000_000)

        # No unicode normalization: visually equal handles are different intents
        assert build_digest(composed, CONTRACT, CHAIN_ID, domain_separator) != build_digest(
            decomposed, CONTRACT, CHAIN_ID, domain_separator
        )

        signable = encode_typed_data(full_message=build_typed_data(composed, CONTRACT, CHAIN_ID))
        assert hash_struct(composed) == signable.body

    @pytest.mark.parametrize("separator", [b"", b"\x00" * 31, b"\x00" * 33, "00" * 32])
    def test_rejects_malformed_domain_separator(self, intent, separator) -> None:
        with pytest.raises(ValidationError, match="32 bytes"):
            build_digest(intent, CONTRACT, CHAIN_ID, separator)

    def test_rejects_invalid_contract(self, intent, domain_separator) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_digest(intent, "0x1234", CHAIN_ID, domain_separator)

        assert exc_info.value.field == "verifying_contract"


class TestDomain:
    def test_domain_matches_local_computation(self, domain_separator) -> None:
        assert domain_matches(domain_separator, CONTRACT, CHAIN_ID)
        assert domain_matches(domain_separator, CONTRACT.lower(), CHAIN_ID)

    def test_domain_mismatch_on_other_version(self, domain_separator) -> None:
        assert not domain_matches(domain_separator, CONTRACT, CHAIN_ID, version="2")

    def test_typed_data_uses_camel_case_message(self, intent) -> None:
        typed = build_typed_data(intent, CONTRACT, CHAIN_ID)

        assert typed["primaryType"] == "PaymentIntent"
        assert typed["domain"] == {
            "name": "SocialPayEVVM",
            "version": "1",
            "chainId": CHAIN_ID,
            "verifyingContract": CONTRACT,
        }
        assert typed["message"]["asyncNonce"] == 1


class TestIntentDigestBuilder:
    def test_builder_delegates_to_module_functions(self, intent, domain_separator) -> None:
        builder = IntentDigestBuilder(CONTRACT.lower(), CHAIN_ID)

        assert builder.verifying_contract == CONTRACT
        assert builder.build_digest(intent, domain_separator) == build_digest(
            intent, CONTRACT, CHAIN_ID, domain_separator
        )
        assert builder.local_domain_separator() == domain_separator
        assert builder.domain_matches(domain_separator)
        assert builder.typed_data(intent) == build_typed_data(intent, CONTRACT, CHAIN_ID)

    def test_builder_rejects_bad_chain(self) -> None:
        with pytest.raises(ValidationError):
            IntentDigestBuilder(CONTRACT, 0)


class TestPaymentIntent:
    """Construction-time checks on the intent value."""

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"handle": ""}, "handle"),
            ({"handle": "@alice"}, "handle"),
            ({"platform": ""}, "platform"),
            ({"amount": 0}, "amount"),
            ({"amount": -1}, "amount"),
            ({"amount": 2**256}, "amount"),
            ({"async_nonce": -1}, "async_nonce"),
            ({"deadline": "soon"}, "deadline"),
        ],
    )
    def test_invalid_fields_are_rejected(self, kwargs, field) -> None:
        values = {
            "handle": "alice",
            "platform": "telegram",
            "amount": 1,
            "async_nonce": 1,
            "deadline": 2_000_000_000,
        }
        values.update(kwargs)

        with pytest.raises(ValidationError) as exc_info:
            PaymentIntent(**values)

        assert exc_info.value.field == field
