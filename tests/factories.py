"""
Shared fixtures for API and service tests.
"""

from datetime import date
from decimal import Decimal

from apps.borrowers.models import Borrower
from apps.loans.models import LoanApplication, LoanProduct
from apps.loans.services import ApplicationService


def make_borrower(email='ravi.kumar@example.com', **kwargs):
    defaults = {
        'first_name': 'Ravi',
        'last_name': 'Kumar',
        'phone_number': '9876543210',
    }
    defaults.update(kwargs)
    return Borrower.objects.create(email=email, **defaults)


def make_product(name='Personal Loan', **kwargs):
    defaults = {
        'min_amount': Decimal('10000.00'),
        'max_amount': Decimal('500000.00'),
        'interest_rate': Decimal('12.00'),
        'min_tenure': 6,
        'max_tenure': 60,
        'late_fee_percentage': Decimal('2.00'),
    }
    defaults.update(kwargs)
    return LoanProduct.objects.create(name=name, **defaults)


def make_application(borrower, product, amount=Decimal('100000.00'), tenure=12):
    return LoanApplication.objects.create(
        application_number=f'APP-TEST-{LoanApplication.objects.count() + 1:04d}',
        borrower=borrower,
        product=product,
        requested_amount=amount,
        requested_tenure=tenure,
        purpose='Home renovation',
    )


def make_loan(borrower=None, product=None, amount=Decimal('100000.00'), tenure=12,
              rate=Decimal('12.00'), disbursed_date=date(2024, 1, 15)):
    """A disbursed 100000 at 12% over 12 months: EMI 8884.88, total 106618.56."""
    borrower = borrower or make_borrower()
    product = product or make_product()
    application = make_application(borrower, product, amount, tenure)
    return ApplicationService.approve(
        application_id=application.pk,
        disbursed_amount=amount,
        interest_rate=rate,
        disbursed_date=disbursed_date,
        reviewed_by='tester',
    )
