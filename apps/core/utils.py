"""
Core utility functions for the lending back office.

Contains the money math shared by the amortization engine and the
surrounding services. All financial calculations use Python's Decimal
and a single rounding routine so that every EMI-derived figure is
reproducible to the cent.
"""

import random
import string
import time
from decimal import ROUND_HALF_UP, Decimal, getcontext

# Set high precision for intermediate financial calculations
getcontext().prec = 28

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_decimal(value) -> Decimal:
    """Coerce int, float, str or Decimal to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """
    Round a currency amount to 2 decimal places, half away from zero.

    This is the only rounding routine used for EMI, schedule rows,
    totals and late fees.
    """
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate) -> Decimal:
    """Convert an annual percentage rate to a monthly fraction."""
    return to_decimal(annual_rate) / Decimal('12') / Decimal('100')


def calculate_emi(principal, annual_rate, tenure_months: int) -> Decimal:
    """
    Calculate EMI using the reducing balance formula.

    EMI = P × r × (1+r)^n / ((1+r)^n - 1)

    Where:
        P = principal (loan amount)
        r = monthly interest rate (annual_rate / 12 / 100)
        n = tenure in months

    Args:
        principal: Loan amount. Accepts Decimal, float, or int.
        annual_rate: Annual interest rate as percentage (e.g., 12 for 12%).
        tenure_months: Number of monthly installments.

    Returns:
        Monthly EMI as Decimal, rounded to 2 places (ROUND_HALF_UP).
        Returns 0.00 when principal or tenure is not positive; callers
        must treat that as insufficient input, not as a valid EMI.
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)

    if principal <= 0 or tenure_months <= 0:
        return ZERO

    # Interest-free loan: straight-line split
    if annual_rate <= 0:
        return round_money(principal / Decimal(tenure_months))

    rate = monthly_rate(annual_rate)
    factor = (Decimal('1') + rate) ** tenure_months
    emi = principal * rate * factor / (factor - Decimal('1'))

    return round_money(emi)


def calculate_total_payable(principal, annual_rate, tenure_months: int) -> Decimal:
    """Total amount repaid over the loan's life: EMI × tenure, rounded."""
    emi = calculate_emi(principal, annual_rate, tenure_months)
    return round_money(emi * tenure_months)


def calculate_late_fee(emi_amount, late_fee_percentage, days_overdue: int) -> Decimal:
    """
    Daily late fee for an overdue installment.

    The product's late fee percentage is a monthly charge on the EMI,
    spread evenly over a 30-day month.

    Examples:
        calculate_late_fee(3000, 2, 15) → 30.00
        calculate_late_fee(3000, 2, 0)  → 0.00
    """
    if days_overdue <= 0:
        return ZERO

    monthly_fee = to_decimal(emi_amount) * to_decimal(late_fee_percentage) / Decimal('100')
    daily_fee = monthly_fee / Decimal('30')
    return round_money(daily_fee * days_overdue)


def to_base36(number: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_reference(prefix: str) -> str:
    """
    Build a human-readable reference number.

    Format: PREFIX-<base36 millisecond timestamp>-<4 random base36 chars>,
    e.g. LN-M1Z3K9QA-7F2C.
    """
    timestamp = to_base36(int(time.time() * 1000))
    suffix = ''.join(random.choices(BASE36_ALPHABET, k=4))
    return f"{prefix}-{timestamp}-{suffix}"


def generate_application_number() -> str:
    return generate_reference('APP')


def generate_loan_number() -> str:
    return generate_reference('LN')


def generate_payment_number() -> str:
    return generate_reference('PAY')
