"""Derived-field normalization for wage records.

Every mutation path (calculation, payment, settlement, admin override) ends with
`normalize`, so `remaining_amount` and `payment_status` always follow from
`amount` and `calculated_amount`.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ..core.constants import MONEY_QUANTUM, ZERO
from ..core.enums import PaymentStatus
from .model import WageRecord


def derive_payment_status(amount: Decimal, calculated_amount: Decimal) -> PaymentStatus:
    if amount == 0:
        return PaymentStatus.UNPAID
    if amount >= calculated_amount:
        return PaymentStatus.FULL
    return PaymentStatus.PARTIAL


def remaining(amount: Decimal, calculated_amount: Decimal) -> Decimal:
    return max(ZERO, calculated_amount - amount).quantize(MONEY_QUANTUM)


def normalize(record: WageRecord) -> WageRecord:
    amount = record.amount.quantize(MONEY_QUANTUM)
    calculated = record.calculated_amount.quantize(MONEY_QUANTUM)
    return replace(
        record,
        amount=amount,
        calculated_amount=calculated,
        remaining_amount=remaining(amount, calculated),
        payment_status=derive_payment_status(amount, calculated),
    )


def outstanding(record: WageRecord) -> Decimal:
    return max(ZERO, record.calculated_amount - record.amount)

