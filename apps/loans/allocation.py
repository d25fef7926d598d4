"""
Payment allocation against a loan's repayment schedule.

``allocate_payment`` decides which installment an incoming payment settles
and what the loan's balance and status become. It only computes: the
payment service applies the result to the database inside one
transaction, with the loan row locked.

Two simplifications are kept on purpose and must not be "fixed" here
without a policy decision:

* a second partial payment on the same installment replaces the earlier
  partial amount instead of adding to it;
* the surplus of an overpayment reduces the loan's outstanding balance
  but is not carried into the next installment.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from django.utils import timezone

from apps.core.exceptions import InvalidPaymentAmountError
from apps.core.utils import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_TYPE_EMI = 'emi'
PAYMENT_TYPE_PARTIAL = 'partial'
PAYMENT_TYPE_ADVANCE = 'advance'

INSTALLMENT_PENDING = 'pending'
INSTALLMENT_PAID = 'paid'

LOAN_CLOSED = 'closed'


@dataclass(frozen=True)
class LoanSnapshot:
    """The loan aggregate as read inside the payment transaction."""

    loan_id: Optional[int]
    outstanding_balance: Decimal
    status: str = 'active'

    @classmethod
    def from_model(cls, loan):
        return cls(
            loan_id=loan.pk,
            outstanding_balance=to_decimal(loan.outstanding_balance),
            status=loan.status,
        )


@dataclass(frozen=True)
class InstallmentSnapshot:
    """A schedule row as read inside the payment transaction."""

    installment_id: Optional[int]
    installment_number: int
    due_date: date
    emi_amount: Decimal
    paid_amount: Decimal = ZERO
    status: str = INSTALLMENT_PENDING

    @classmethod
    def from_model(cls, installment):
        return cls(
            installment_id=installment.pk,
            installment_number=installment.installment_number,
            due_date=installment.due_date,
            emi_amount=to_decimal(installment.emi_amount),
            paid_amount=to_decimal(installment.paid_amount),
            status=installment.status,
        )


@dataclass(frozen=True)
class InstallmentUpdate:
    """New paid state for one installment."""

    installment_id: Optional[int]
    installment_number: int
    status: str
    paid_amount: Decimal
    paid_date: Optional[datetime]


@dataclass(frozen=True)
class PaymentRecord:
    """The ledger entry to append for this payment."""

    amount: Decimal
    payment_type: str
    installment_id: Optional[int]


@dataclass(frozen=True)
class PaymentAllocation:
    """Everything the caller must persist atomically for one payment."""

    installment_updates: Tuple[InstallmentUpdate, ...]
    payment: PaymentRecord
    new_outstanding_balance: Decimal
    new_loan_status: str


def select_target_installment(
    installments: Sequence[InstallmentSnapshot],
) -> Optional[InstallmentSnapshot]:
    """Earliest-due pending installment; ties go to the lowest number."""
    pending = [i for i in installments if i.status == INSTALLMENT_PENDING]
    if not pending:
        return None
    return min(pending, key=lambda i: (i.due_date, i.installment_number))


def allocate_payment(
    loan: LoanSnapshot,
    pending_installments: Sequence[InstallmentSnapshot],
    payment_amount,
    paid_at: Optional[datetime] = None,
) -> PaymentAllocation:
    """
    Allocate a payment to a single installment and update the loan totals.

    Args:
        loan: Current loan state.
        pending_installments: The loan's unpaid schedule rows. Rows that are
            not ``pending`` are ignored.
        payment_amount: Amount received, must be positive.
        paid_at: Timestamp stored on a fully paid installment.
            Defaults to now.

    Returns:
        PaymentAllocation with at most one installment update.

    Raises:
        InvalidPaymentAmountError: If payment_amount is not positive.
    """
    if payment_amount is None:
        raise InvalidPaymentAmountError()
    amount = round_money(payment_amount)
    if amount <= 0:
        raise InvalidPaymentAmountError()

    target = select_target_installment(pending_installments)
    updates = ()

    if target is None:
        payment = PaymentRecord(
            amount=amount,
            payment_type=PAYMENT_TYPE_ADVANCE,
            installment_id=None,
        )
    elif amount >= target.emi_amount:
        remainder = amount - target.emi_amount
        updates = (
            InstallmentUpdate(
                installment_id=target.installment_id,
                installment_number=target.installment_number,
                status=INSTALLMENT_PAID,
                paid_amount=target.emi_amount,
                paid_date=paid_at or timezone.now(),
            ),
        )
        payment = PaymentRecord(
            amount=amount,
            payment_type=PAYMENT_TYPE_PARTIAL if remainder > 0 else PAYMENT_TYPE_EMI,
            installment_id=target.installment_id,
        )
    else:
        updates = (
            InstallmentUpdate(
                installment_id=target.installment_id,
                installment_number=target.installment_number,
                status=INSTALLMENT_PENDING,
                paid_amount=amount,
                paid_date=None,
            ),
        )
        payment = PaymentRecord(
            amount=amount,
            payment_type=PAYMENT_TYPE_EMI,
            installment_id=target.installment_id,
        )

    new_balance = max(ZERO, round_money(loan.outstanding_balance - amount))
    new_status = LOAN_CLOSED if new_balance <= 0 else loan.status

    logger.debug(
        "Loan %s: allocated %s as %s to installment %s, outstanding %s → %s",
        loan.loan_id,
        amount,
        payment.payment_type,
        target.installment_number if target else None,
        loan.outstanding_balance,
        new_balance,
    )

    return PaymentAllocation(
        installment_updates=updates,
        payment=payment,
        new_outstanding_balance=new_balance,
        new_loan_status=new_status,
    )
