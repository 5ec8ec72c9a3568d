"""Unit tests for exceptions module."""

import pytest

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


class TestSocialPayError:
    """Tests for base exception."""

    def test_basic_error(self) -> None:
        error = SocialPayError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details == {}

    def test_error_with_details(self) -> None:
        error = SocialPayError("RPC failed", details={"status_code": 502})

        assert "RPC failed" in str(error)
        assert "502" in str(error)

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ValidationError,
            LedgerError,
            LedgerUnavailableError,
            SubmissionError,
            SigningError,
            PaymentStateError,
            NoPendingPaymentError,
            PaymentExpiredError,
            PaymentInFlightError,
        ],
    )
    def test_hierarchy(self, exc_class) -> None:
        assert issubclass(exc_class, SocialPayError)


class TestLedgerErrors:
    def test_unavailable_is_ledger_error(self) -> None:
        error = LedgerUnavailableError("All providers failed", method="eth_call")

        assert isinstance(error, LedgerError)
        assert error.method == "eth_call"

    def test_submission_error_reason_verbatim(self) -> None:
        error = SubmissionError("Gas estimation failed", reason="Insufficient balance")

        assert error.reason == "Insufficient balance"
        assert str(error) == "Insufficient balance"

    def test_submission_error_reason_defaults_to_message(self) -> None:
        assert SubmissionError("Broadcast failed").reason == "Broadcast failed"

    def test_timeout_is_submission_error(self) -> None:
        error = TransactionTimeoutError("No receipt", tx_hash="0xabc", timeout_seconds=120)

        assert isinstance(error, SubmissionError)
        assert error.tx_hash == "0xabc"
        assert error.timeout_seconds == 120
        assert error.method == "eth_getTransactionReceipt"


class TestStateErrors:
    def test_expired_carries_age(self) -> None:
        error = PaymentExpiredError("Payment expired", initiator_identity=7, age_seconds=301.0)

        assert isinstance(error, PaymentStateError)
        assert error.initiator_identity == 7
        assert error.age_seconds == 301.0

    def test_validation_field(self) -> None:
        assert ValidationError("bad", field="amount").field == "amount"
