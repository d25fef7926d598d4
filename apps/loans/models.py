"""
Loan models for the lending back office.

A LoanApplication is submitted against a LoanProduct. Approval disburses
a Loan together with its full Installment schedule. Payments are an
append-only ledger against the loan.
"""

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class LoanProduct(models.Model):
    """A lending product with its amount, tenure and pricing bounds."""

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Product name shown to borrowers."
    )
    description = models.TextField(blank=True)
    min_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Smallest principal that can be requested.",
    )
    max_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Largest principal that can be requested.",
    )
    interest_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
        help_text="Annual interest rate (percentage).",
    )
    min_tenure = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Shortest tenure in months."
    )
    max_tenure = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Longest tenure in months."
    )
    processing_fee = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0'))],
    )
    late_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('2.00'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Monthly late fee as a percentage of the EMI.",
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'loan_products'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.interest_rate}%)"


class LoanApplication(models.Model):
    """A borrower's request for a loan, reviewed by staff."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    application_number = models.CharField(max_length=32, unique=True)
    borrower = models.ForeignKey(
        'borrowers.Borrower',
        on_delete=models.PROTECT,
        related_name='applications',
    )
    product = models.ForeignKey(
        LoanProduct,
        on_delete=models.PROTECT,
        related_name='applications',
    )
    requested_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    requested_tenure = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Requested tenure in months."
    )
    purpose = models.TextField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    remarks = models.TextField(blank=True)
    reviewed_by = models.CharField(max_length=150, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'loan_applications'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.application_number} ({self.status})"


class Loan(models.Model):
    """
    A disbursed loan.

    outstanding_balance starts at total_payable and only goes down as
    payments are recorded; the loan closes when it reaches zero.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        CLOSED = 'closed', 'Closed'
        DEFAULTED = 'defaulted', 'Defaulted'

    loan_number = models.CharField(max_length=32, unique=True)
    application = models.OneToOneField(
        LoanApplication,
        on_delete=models.PROTECT,
        related_name='loan',
    )
    borrower = models.ForeignKey(
        'borrowers.Borrower',
        on_delete=models.PROTECT,
        related_name='loans',
        db_index=True,
    )
    product = models.ForeignKey(
        LoanProduct,
        on_delete=models.PROTECT,
        related_name='loans',
    )
    principal_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Principal the schedule amortizes.",
    )
    interest_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Annual interest rate (percentage).",
    )
    tenure = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Loan tenure in months."
    )
    emi_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        help_text="Monthly EMI (reducing balance).",
    )
    total_payable = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        help_text="EMI × tenure, rounded to the cent.",
    )
    outstanding_balance = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
    )
    disbursed_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
    )
    disbursed_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'loans'
        ordering = ['-created_at']
        indexes = [
            models.Index(
                fields=['borrower', 'status'],
                name='idx_loan_borrower_status'
            ),
        ]

    def __str__(self):
        return (
            f"Loan {self.loan_number} - Borrower: {self.borrower_id} "
            f"- Amount: {self.principal_amount}"
        )

    @property
    def repayments_left(self):
        """Installments not yet fully paid."""
        return self.installments.exclude(
            status=Installment.Status.PAID
        ).count()


class Installment(models.Model):
    """One month of a loan's repayment schedule."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        OVERDUE = 'overdue', 'Overdue'

    loan = models.ForeignKey(
        Loan,
        on_delete=models.CASCADE,
        related_name='installments',
    )
    installment_number = models.PositiveIntegerField()
    due_date = models.DateField(db_index=True)
    emi_amount = models.DecimalField(max_digits=15, decimal_places=2)
    principal_amount = models.DecimalField(max_digits=15, decimal_places=2)
    interest_amount = models.DecimalField(max_digits=15, decimal_places=2)
    paid_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    late_fee = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    paid_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'repayment_schedules'
        ordering = ['loan', 'installment_number']
        constraints = [
            models.UniqueConstraint(
                fields=['loan', 'installment_number'],
                name='uniq_installment_per_loan',
            ),
        ]
        indexes = [
            models.Index(
                fields=['loan', 'status', 'due_date'],
                name='idx_installment_loan_pending'
            ),
        ]

    def __str__(self):
        return f"Loan {self.loan_id} #{self.installment_number} ({self.status})"


class Payment(models.Model):
    """An append-only ledger entry for money received against a loan."""

    class PaymentType(models.TextChoices):
        EMI = 'emi', 'EMI'
        PARTIAL = 'partial', 'Partial'
        ADVANCE = 'advance', 'Advance'

    class Method(models.TextChoices):
        CASH = 'cash', 'Cash'
        BANK_TRANSFER = 'bank_transfer', 'Bank transfer'
        RAZORPAY = 'razorpay', 'Razorpay'
        STRIPE = 'stripe', 'Stripe'

    payment_number = models.CharField(max_length=32, unique=True)
    loan = models.ForeignKey(
        Loan,
        on_delete=models.PROTECT,
        related_name='payments',
    )
    installment = models.ForeignKey(
        Installment,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments',
    )
    borrower = models.ForeignKey(
        'borrowers.Borrower',
        on_delete=models.PROTECT,
        related_name='payments',
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    payment_method = models.CharField(
        max_length=32,
        choices=Method.choices,
        blank=True,
    )
    transaction_id = models.CharField(max_length=100, blank=True)
    payment_type = models.CharField(
        max_length=16,
        choices=PaymentType.choices,
    )
    remarks = models.TextField(blank=True)
    recorded_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.payment_number} - {self.amount} ({self.payment_type})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Payments are append-only and cannot be modified.")
        super().save(*args, **kwargs)
