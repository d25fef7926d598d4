"""
Loan service layer.

Contains application review, disbursement, payment recording and
reporting. Each disbursement and each payment runs in a single database
transaction with the affected row locked, so the loan row, its schedule
and the payment ledger always change together.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from apps.borrowers.services import BorrowerService
from apps.core.exceptions import (
    ApplicationAlreadyReviewedError,
    ApplicationNotFoundError,
    InvalidPaymentAmountError,
    LoanClosedError,
    LoanNotFoundError,
    ProductNotFoundError,
)
from apps.core.utils import (
    ZERO,
    calculate_emi,
    calculate_total_payable,
    generate_application_number,
    generate_loan_number,
    generate_payment_number,
    round_money,
    to_decimal,
)
from apps.loans.allocation import InstallmentSnapshot, LoanSnapshot, allocate_payment
from apps.loans.models import (
    Installment,
    Loan,
    LoanApplication,
    LoanProduct,
    Payment,
)
from apps.loans.schedule import generate_repayment_schedule

logger = logging.getLogger(__name__)


class ProductService:
    """Read access to loan products."""

    @staticmethod
    def list_active():
        return LoanProduct.objects.filter(is_active=True).order_by('name')

    @staticmethod
    def get_product(product_id: int) -> LoanProduct:
        try:
            return LoanProduct.objects.get(pk=product_id)
        except LoanProduct.DoesNotExist:
            raise ProductNotFoundError(
                detail=f"Loan product with ID {product_id} not found."
            )


class ApplicationService:
    """Submission and review of loan applications."""

    @staticmethod
    def submit(
        borrower_id: int,
        product_id: int,
        amount: Decimal,
        tenure: int,
        purpose: str,
    ) -> LoanApplication:
        """
        Submit a new application against an active product.

        Raises:
            BorrowerNotFoundError / ProductNotFoundError: Unknown ids.
            ValidationError: Inactive borrower or product, or amount /
                tenure outside the product's range.
        """
        amount = to_decimal(amount)
        borrower = BorrowerService.get_borrower(borrower_id)
        product = ProductService.get_product(product_id)

        errors = {}
        if not borrower.is_active:
            errors['borrower_id'] = ['Borrower account is inactive.']
        if not product.is_active:
            errors['product_id'] = ['Loan product is not available.']
        if not product.min_amount <= amount <= product.max_amount:
            errors['amount'] = [
                f'Amount must be between {product.min_amount} '
                f'and {product.max_amount}.'
            ]
        if not product.min_tenure <= tenure <= product.max_tenure:
            errors['tenure'] = [
                f'Tenure must be between {product.min_tenure} '
                f'and {product.max_tenure} months.'
            ]
        if errors:
            raise ValidationError(errors)

        application = LoanApplication.objects.create(
            application_number=generate_application_number(),
            borrower=borrower,
            product=product,
            requested_amount=amount,
            requested_tenure=tenure,
            purpose=purpose,
        )

        logger.info(
            "Application %s submitted by borrower %d: product=%d, "
            "amount=%s, tenure=%d",
            application.application_number,
            borrower.pk,
            product.pk,
            amount,
            tenure,
        )
        return application

    @staticmethod
    def list_applications(status: Optional[str] = None):
        """
        Applications for the review queue, newest first.

        Raises:
            ValidationError: Unknown status filter.
        """
        applications = LoanApplication.objects.select_related('borrower', 'product')
        if status:
            if status not in LoanApplication.Status.values:
                raise ValidationError(
                    {'status': [f"Unknown application status '{status}'."]}
                )
            applications = applications.filter(status=status)
        return applications.order_by('-created_at', '-id')

    @staticmethod
    def status_counts() -> dict:
        """Number of applications in each status, zero included."""
        counts = dict(
            LoanApplication.objects.order_by()
            .values_list('status')
            .annotate(count=Count('id'))
        )
        return {status: counts.get(status, 0) for status in LoanApplication.Status.values}

    @staticmethod
    def get_borrower_applications(borrower_id: int):
        """
        A borrower's own applications, newest first.

        Raises:
            BorrowerNotFoundError: If the borrower does not exist.
        """
        BorrowerService.get_borrower(borrower_id)
        return (
            LoanApplication.objects
            .filter(borrower_id=borrower_id)
            .select_related('product')
            .order_by('-created_at', '-id')
        )

    @staticmethod
    def _lock_pending(application_id: int) -> LoanApplication:
        """Lock the application row and make sure it is still pending."""
        try:
            application = (
                LoanApplication.objects
                .select_for_update()
                .get(pk=application_id)
            )
        except LoanApplication.DoesNotExist:
            raise ApplicationNotFoundError(
                detail=f"Application with ID {application_id} not found."
            )

        if application.status != LoanApplication.Status.PENDING:
            raise ApplicationAlreadyReviewedError(
                detail=(
                    f"Application {application.application_number} "
                    f"is already {application.status}."
                )
            )
        return application

    @classmethod
    @transaction.atomic
    def approve(
        cls,
        application_id: int,
        disbursed_amount: Decimal,
        interest_rate: Decimal,
        disbursed_date: date,
        remarks: str = '',
        reviewed_by: str = '',
    ) -> Loan:
        """
        Approve an application and disburse the loan.

        Locks the application row first, then creates the loan and
        bulk-inserts its full repayment schedule. Either the loan and
        every installment exist, or none of them do.

        Args:
            application_id: Application's primary key.
            disbursed_amount: Principal released to the borrower.
            interest_rate: Annual interest rate (%) applied to the loan.
            disbursed_date: Disbursement date; installment N is due
                N months later.
            remarks: Optional reviewer note.
            reviewed_by: Name of the staff member approving.

        Returns:
            The created Loan.
        """
        disbursed_amount = to_decimal(disbursed_amount)
        interest_rate = to_decimal(interest_rate)

        application = cls._lock_pending(application_id)
        tenure = application.requested_tenure

        emi = calculate_emi(disbursed_amount, interest_rate, tenure)
        if emi <= 0:
            raise ValidationError(
                {'disbursed_amount': ['Cannot compute an EMI for these terms.']}
            )
        total_payable = calculate_total_payable(disbursed_amount, interest_rate, tenure)

        application.status = LoanApplication.Status.APPROVED
        application.remarks = remarks
        application.reviewed_by = reviewed_by
        application.reviewed_at = timezone.now()
        application.save(update_fields=[
            'status', 'remarks', 'reviewed_by', 'reviewed_at', 'updated_at',
        ])

        loan = Loan.objects.create(
            loan_number=generate_loan_number(),
            application=application,
            borrower_id=application.borrower_id,
            product_id=application.product_id,
            principal_amount=disbursed_amount,
            interest_rate=interest_rate,
            tenure=tenure,
            emi_amount=emi,
            total_payable=total_payable,
            outstanding_balance=total_payable,
            disbursed_amount=disbursed_amount,
            disbursed_date=disbursed_date,
            status=Loan.Status.ACTIVE,
        )

        schedule = generate_repayment_schedule(
            disbursed_amount,
            interest_rate,
            tenure,
            emi,
            disbursed_date,
        )
        Installment.objects.bulk_create([
            Installment(
                loan=loan,
                installment_number=row.installment_number,
                due_date=row.due_date,
                emi_amount=row.emi_amount,
                principal_amount=row.principal_amount,
                interest_amount=row.interest_amount,
                paid_amount=row.paid_amount,
                late_fee=row.late_fee,
                status=row.status,
            )
            for row in schedule
        ])

        logger.info(
            "Loan %s disbursed from application %s: principal=%s, "
            "rate=%s%%, tenure=%d, emi=%s, total_payable=%s",
            loan.loan_number,
            application.application_number,
            disbursed_amount,
            interest_rate,
            tenure,
            emi,
            total_payable,
        )
        return loan

    @classmethod
    @transaction.atomic
    def reject(cls, application_id: int, remarks: str, reviewed_by: str = '') -> LoanApplication:
        """Reject a pending application. Remarks are mandatory."""
        if not remarks or not remarks.strip():
            raise ValidationError(
                {'remarks': ['Reason for rejection is required.']}
            )

        application = cls._lock_pending(application_id)
        application.status = LoanApplication.Status.REJECTED
        application.remarks = remarks
        application.reviewed_by = reviewed_by
        application.reviewed_at = timezone.now()
        application.save(update_fields=[
            'status', 'remarks', 'reviewed_by', 'reviewed_at', 'updated_at',
        ])

        logger.info(
            "Application %s rejected: %s",
            application.application_number,
            remarks,
        )
        return application


class LoanService:
    """Service for loan retrieval operations."""

    @staticmethod
    def get_loan(loan_id: int) -> Optional[Loan]:
        """
        Retrieve a single loan by ID with borrower and product.

        Returns:
            Loan instance or None.
        """
        try:
            return Loan.objects.select_related('borrower', 'product').get(pk=loan_id)
        except Loan.DoesNotExist:
            return None

    @staticmethod
    def get_borrower_loans(borrower_id: int):
        """
        Retrieve all loans for a given borrower, newest first.

        Raises:
            BorrowerNotFoundError: If the borrower does not exist.
        """
        BorrowerService.get_borrower(borrower_id)
        return Loan.objects.filter(
            borrower_id=borrower_id,
        ).order_by('-created_at')

    @staticmethod
    @transaction.atomic
    def mark_defaulted(loan_ids) -> tuple:
        """
        Move active loans to defaulted.

        This is the only status change made outside payment recording.
        Closed and already defaulted loans are left as they are.

        Returns:
            (defaulted, skipped) counts.
        """
        loans = Loan.objects.select_for_update().filter(pk__in=list(loan_ids))
        defaulted = 0
        skipped = 0
        for loan in loans:
            if loan.status != Loan.Status.ACTIVE:
                skipped += 1
                continue
            loan.status = Loan.Status.DEFAULTED
            loan.save(update_fields=['status', 'updated_at'])
            defaulted += 1
            logger.warning("Loan %s marked as defaulted", loan.loan_number)
        return defaulted, skipped


class PaymentService:
    """Records payments through the allocator."""

    @staticmethod
    @transaction.atomic
    def record_payment(
        loan_id: int,
        amount: Decimal,
        payment_method: str = '',
        transaction_id: str = '',
        remarks: str = '',
        recorded_by: str = '',
    ) -> Payment:
        """
        Record a payment and apply it to the loan's schedule.

        The loan row is locked with select_for_update() before the
        schedule is read, so two payments on the same loan never
        interleave. Recording the same payment twice is not detected
        here: it creates two ledger entries and reduces the balance
        twice.

        Raises:
            InvalidPaymentAmountError: Amount is not positive.
            LoanNotFoundError: Unknown loan.
            LoanClosedError: Loan is already closed.
        """
        if amount is None or round_money(amount) <= 0:
            raise InvalidPaymentAmountError()

        try:
            loan = Loan.objects.select_for_update().get(pk=loan_id)
        except Loan.DoesNotExist:
            raise LoanNotFoundError(
                detail=f"Loan with ID {loan_id} not found."
            )

        if loan.status == Loan.Status.CLOSED:
            raise LoanClosedError(
                detail=f"Loan {loan.loan_number} is already closed."
            )

        pending = (
            loan.installments
            .filter(status=Installment.Status.PENDING)
            .order_by('due_date', 'installment_number')
        )
        allocation = allocate_payment(
            LoanSnapshot.from_model(loan),
            [InstallmentSnapshot.from_model(row) for row in pending],
            amount,
            paid_at=timezone.now(),
        )

        for update in allocation.installment_updates:
            Installment.objects.filter(pk=update.installment_id).update(
                status=update.status,
                paid_amount=update.paid_amount,
                paid_date=update.paid_date,
                updated_at=timezone.now(),
            )

        payment = Payment.objects.create(
            payment_number=generate_payment_number(),
            loan=loan,
            installment_id=allocation.payment.installment_id,
            borrower_id=loan.borrower_id,
            amount=allocation.payment.amount,
            payment_method=payment_method or '',
            transaction_id=transaction_id or '',
            payment_type=allocation.payment.payment_type,
            remarks=remarks or '',
            recorded_by=recorded_by or '',
        )

        loan.outstanding_balance = allocation.new_outstanding_balance
        loan.status = allocation.new_loan_status
        loan.save(update_fields=['outstanding_balance', 'status', 'updated_at'])

        logger.info(
            "Payment %s recorded on loan %s: amount=%s, type=%s, "
            "outstanding=%s, status=%s",
            payment.payment_number,
            loan.loan_number,
            payment.amount,
            payment.payment_type,
            loan.outstanding_balance,
            loan.status,
        )
        return payment

    @staticmethod
    def get_loan_payments(loan_id: int):
        if not Loan.objects.filter(pk=loan_id).exists():
            raise LoanNotFoundError(
                detail=f"Loan with ID {loan_id} not found."
            )
        return Payment.objects.filter(loan_id=loan_id).select_related('installment')


class ReportService:
    """Portfolio reports for back-office staff."""

    REPORT_TYPES = ('loan_register', 'collection', 'overdue')

    @staticmethod
    def loan_register() -> dict:
        totals = Loan.objects.aggregate(
            total_disbursed=Sum('disbursed_amount'),
            total_outstanding=Sum('outstanding_balance'),
        )
        by_status = dict(
            Loan.objects.order_by().values_list('status').annotate(count=Count('id'))
        )
        loans = Loan.objects.select_related('borrower', 'product').values(
            'loan_number',
            'borrower__first_name',
            'borrower__last_name',
            'product__name',
            'principal_amount',
            'interest_rate',
            'tenure',
            'emi_amount',
            'total_payable',
            'outstanding_balance',
            'disbursed_date',
            'status',
        )
        return {
            'summary': {
                'total_disbursed': totals['total_disbursed'] or ZERO,
                'total_outstanding': totals['total_outstanding'] or ZERO,
                'active_loans': by_status.get(Loan.Status.ACTIVE, 0),
                'closed_loans': by_status.get(Loan.Status.CLOSED, 0),
                'defaulted_loans': by_status.get(Loan.Status.DEFAULTED, 0),
            },
            'rows': list(loans),
        }

    @staticmethod
    def collection() -> dict:
        total = Payment.objects.aggregate(total=Sum('amount'))['total'] or ZERO
        by_type = {
            row['payment_type']: row['total']
            for row in Payment.objects.order_by().values('payment_type').annotate(total=Sum('amount'))
        }
        payments = Payment.objects.values(
            'payment_number',
            'loan__loan_number',
            'amount',
            'payment_method',
            'payment_type',
            'created_at',
        )
        return {
            'summary': {
                'total_collected': total,
                'by_payment_type': by_type,
            },
            'rows': list(payments),
        }

    @staticmethod
    def overdue() -> dict:
        overdue = Installment.objects.filter(status=Installment.Status.OVERDUE)
        totals = overdue.aggregate(
            total_late_fees=Sum('late_fee'),
            total_overdue=Sum('emi_amount'),
        )
        rows = overdue.order_by('due_date').values(
            'loan__loan_number',
            'installment_number',
            'emi_amount',
            'due_date',
            'paid_amount',
            'late_fee',
        )
        return {
            'summary': {
                'overdue_installments': overdue.count(),
                'total_overdue': totals['total_overdue'] or ZERO,
                'total_late_fees': totals['total_late_fees'] or ZERO,
            },
            'rows': list(rows),
        }

    @classmethod
    def build(cls, report_type: str) -> dict:
        if report_type not in cls.REPORT_TYPES:
            raise ValidationError(
                {'report_type': [f"Unknown report type '{report_type}'."]}
            )
        return getattr(cls, report_type)()
