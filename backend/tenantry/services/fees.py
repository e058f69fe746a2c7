"""
Processing fees charged to the tenant on top of rent.

Stripe card: 2.9% + $0.30. Stripe ACH debit: 0.8% capped at $5.00.
Moov ACH: nothing, the platform absorbs Moov's cost.
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Union

from pydantic import BaseModel

from tenantry.core.errors import InvalidInput

CENT = Decimal("0.01")

CARD_PERCENTAGE = Decimal("0.029")
CARD_FIXED = Decimal("0.30")

BANK_DEBIT_PERCENTAGE = Decimal("0.008")
BANK_DEBIT_CAP = Decimal("5.00")


class PaymentKind(str, Enum):
    CARD = "card"
    BANK_DEBIT = "us_bank_account"
    ALTERNATE_ACH = "moov_ach"


class UnknownPaymentKind(InvalidInput):
    public_message = "Unsupported payment method type"


class ProcessingFee(BaseModel):
    amount: float
    description: str
    total_with_fee: float


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(amount) -> Decimal:
    # str() first so 0.1 stays 0.1 rather than its binary expansion
    return amount if isinstance(amount, Decimal) else Decimal(str(amount))


def parse_kind(kind: Union[str, PaymentKind]) -> PaymentKind:
    try:
        return PaymentKind(kind)
    except ValueError:
        raise UnknownPaymentKind(detail=f"unknown payment kind {kind!r}")


def calculate_processing_fee(amount, kind: Union[str, PaymentKind]) -> ProcessingFee:
    kind = parse_kind(kind)
    value = _to_decimal(amount)
    if value < 0:
        raise InvalidInput("Amount must not be negative")

    if kind is PaymentKind.CARD:
        fee = value * CARD_PERCENTAGE + CARD_FIXED
        description = "2.9% + $0.30 processing fee"
    elif kind is PaymentKind.BANK_DEBIT:
        fee = min(value * BANK_DEBIT_PERCENTAGE, BANK_DEBIT_CAP)
        description = "0.8% ACH debit fee (max $5.00)"
    else:
        fee = Decimal("0")
        description = "No processing fee"

    fee = round_cents(fee)
    return ProcessingFee(
        amount=float(fee),
        description=description,
        total_with_fee=float(round_cents(value + fee)),
    )


def format_fee_display(fee: ProcessingFee) -> str:
    return f"Processing fee: ${fee.amount:.2f} ({fee.description})"
