"""Tests for the processing fee calculator."""
from decimal import Decimal

import pytest

from tenantry.core.errors import InvalidInput
from tenantry.services.fees import (
    PaymentKind,
    ProcessingFee,
    UnknownPaymentKind,
    calculate_processing_fee,
    format_fee_display,
    round_cents,
)


class TestCardFee:

    def test_rent_of_100(self):
        fee = calculate_processing_fee(100.00, "card")
        assert fee.amount == 3.20
        assert fee.total_with_fee == 103.20
        assert fee.description == "2.9% + $0.30 processing fee"

    def test_zero_amount_still_pays_fixed_part(self):
        assert calculate_processing_fee(0, PaymentKind.CARD).amount == 0.30

    @pytest.mark.parametrize("amount", [1, 9.99, 850, 1234.56, 10000])
    def test_matches_formula(self, amount):
        expected = round_cents(Decimal(str(amount)) * Decimal("0.029") + Decimal("0.30"))
        fee = calculate_processing_fee(amount, "card")
        assert fee.amount == float(expected)
        assert fee.amount >= 0.30

    def test_half_cent_rounds_up(self):
        # 15 * 0.029 + 0.30 = 0.735
        assert calculate_processing_fee(15, "card").amount == 0.74


class TestBankDebitFee:

    def test_capped_at_five_dollars(self):
        fee = calculate_processing_fee(1000.00, "us_bank_account")
        assert fee.amount == 5.00
        assert fee.total_with_fee == 1005.00
        assert fee.description == "0.8% ACH debit fee (max $5.00)"

    def test_below_cap_is_percentage(self):
        assert calculate_processing_fee(500, "us_bank_account").amount == 4.00

    def test_exactly_at_cap(self):
        assert calculate_processing_fee(625, "us_bank_account").amount == 5.00

    @pytest.mark.parametrize("amount", [0, 10, 99.99, 700, 50000])
    def test_never_above_cap(self, amount):
        assert calculate_processing_fee(amount, "us_bank_account").amount <= 5.00


class TestAlternateAch:

    @pytest.mark.parametrize("amount", [0, 1, 1500, 99999.99])
    def test_always_free(self, amount):
        fee = calculate_processing_fee(amount, "moov_ach")
        assert fee.amount == 0
        assert fee.total_with_fee == round(amount, 2)
        assert fee.description == "No processing fee"


class TestInvalidInput:

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(UnknownPaymentKind) as exc:
            calculate_processing_fee(100, "paypal")
        assert exc.value.status_code == 400

    def test_unknown_kind_is_invalid_input(self):
        with pytest.raises(InvalidInput):
            calculate_processing_fee(100, "")

    def test_negative_amount(self):
        with pytest.raises(InvalidInput):
            calculate_processing_fee(-1, "card")


def test_format_fee_display():
    fee = ProcessingFee(amount=3.2, description="2.9% + $0.30 processing fee", total_with_fee=103.2)
    assert format_fee_display(fee) == "Processing fee: $3.20 (2.9% + $0.30 processing fee)"
