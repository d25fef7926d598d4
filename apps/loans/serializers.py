"""
Loan serializers for the lending back office.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.borrowers.serializers import BorrowerDetailSerializer
from apps.loans.models import Installment, Loan, LoanApplication, LoanProduct, Payment


class LoanProductSerializer(serializers.ModelSerializer):
    """Serializer for loan products offered to borrowers."""

    class Meta:
        model = LoanProduct
        fields = (
            'id', 'name', 'description', 'min_amount', 'max_amount',
            'interest_rate', 'min_tenure', 'max_tenure',
            'processing_fee', 'late_fee_percentage',
        )


class CalculateEMISerializer(serializers.Serializer):
    """Serializer for an EMI quote request."""

    principal = serializers.DecimalField(
        max_digits=15,
        decimal_places=2,
        min_value=Decimal('0.01'),
        required=True,
        help_text="Loan principal.",
    )
    interest_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('100'),
        required=True,
        help_text="Annual interest rate (%).",
    )
    tenure = serializers.IntegerField(
        min_value=1,
        max_value=360,
        required=True,
        help_text="Loan tenure in months.",
    )
    start_date = serializers.DateField(
        required=False,
        help_text="Disbursement date for the schedule preview. Defaults to today.",
    )
    include_schedule = serializers.BooleanField(required=False, default=False)


class ScheduleRowSerializer(serializers.Serializer):
    """One row of a generated (not yet persisted) schedule."""

    installment_number = serializers.IntegerField()
    due_date = serializers.DateField()
    emi_amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    principal_amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    interest_amount = serializers.DecimalField(max_digits=15, decimal_places=2)


class EMIQuoteSerializer(serializers.Serializer):
    """EMI quote response, with an optional schedule preview."""

    principal = serializers.DecimalField(max_digits=15, decimal_places=2)
    interest_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    tenure = serializers.IntegerField()
    monthly_installment = serializers.DecimalField(max_digits=15, decimal_places=2)
    total_payable = serializers.DecimalField(max_digits=15, decimal_places=2)
    schedule = ScheduleRowSerializer(many=True, required=False)


class SubmitApplicationSerializer(serializers.Serializer):
    """Serializer for a new loan application."""

    borrower_id = serializers.IntegerField(min_value=1, required=True)
    product_id = serializers.IntegerField(min_value=1, required=True)
    amount = serializers.DecimalField(
        max_digits=15,
        decimal_places=2,
        min_value=Decimal('0.01'),
        required=True,
        help_text="Requested principal.",
    )
    tenure = serializers.IntegerField(
        min_value=1,
        max_value=360,
        required=True,
        help_text="Requested tenure in months.",
    )
    purpose = serializers.CharField(required=True, allow_blank=False)


class ApplicationResponseSerializer(serializers.Serializer):
    """Serializer for an application after submission or review."""

    application_id = serializers.IntegerField()
    application_number = serializers.CharField()
    borrower_id = serializers.IntegerField()
    product_id = serializers.IntegerField()
    requested_amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    requested_tenure = serializers.IntegerField()
    status = serializers.CharField()
    remarks = serializers.CharField(allow_blank=True)


class ApplicationListItemSerializer(serializers.ModelSerializer):
    """An application row in the review queue or a borrower's history."""

    application_id = serializers.IntegerField(source='pk')
    borrower_id = serializers.IntegerField()
    product = serializers.CharField(source='product.name')

    class Meta:
        model = LoanApplication
        fields = (
            'application_id', 'application_number', 'borrower_id', 'product',
            'requested_amount', 'requested_tenure', 'purpose', 'status',
            'remarks', 'reviewed_by', 'reviewed_at', 'created_at',
        )


class ApproveApplicationSerializer(serializers.Serializer):
    """Serializer for approving and disbursing an application."""

    disbursed_amount = serializers.DecimalField(
        max_digits=15,
        decimal_places=2,
        min_value=Decimal('0.01'),
        required=True,
    )
    interest_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('100'),
        required=True,
        help_text="Annual interest rate (%). Zero gives an interest-free loan.",
    )
    disbursed_date = serializers.DateField(required=True)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    reviewed_by = serializers.CharField(
        max_length=150, required=False, allow_blank=True, default='',
    )


class RejectApplicationSerializer(serializers.Serializer):
    """Serializer for rejecting an application."""

    remarks = serializers.CharField(
        required=True,
        allow_blank=False,
        error_messages={
            'required': 'Reason for rejection is required.',
            'blank': 'Reason for rejection is required.',
        },
    )
    reviewed_by = serializers.CharField(
        max_length=150, required=False, allow_blank=True, default='',
    )


class InstallmentSerializer(serializers.ModelSerializer):
    """A persisted schedule row."""

    class Meta:
        model = Installment
        fields = (
            'id', 'installment_number', 'due_date', 'emi_amount',
            'principal_amount', 'interest_amount', 'paid_amount',
            'late_fee', 'status', 'paid_date',
        )


class LoanDetailSerializer(serializers.ModelSerializer):
    """Loan with borrower details and its full schedule."""

    loan_id = serializers.IntegerField(source='pk')
    borrower = BorrowerDetailSerializer()
    product = serializers.CharField(source='product.name')
    installments = InstallmentSerializer(many=True)

    class Meta:
        model = Loan
        fields = (
            'loan_id', 'loan_number', 'borrower', 'product',
            'principal_amount', 'interest_rate', 'tenure', 'emi_amount',
            'total_payable', 'outstanding_balance', 'disbursed_amount',
            'disbursed_date', 'status', 'installments',
        )


class LoanListItemSerializer(serializers.ModelSerializer):
    """Serializer for individual loan item in a borrower's loan list."""

    loan_id = serializers.IntegerField(source='pk')
    repayments_left = serializers.IntegerField()

    class Meta:
        model = Loan
        fields = (
            'loan_id', 'loan_number', 'principal_amount', 'interest_rate',
            'emi_amount', 'outstanding_balance', 'status', 'repayments_left',
        )


class RecordPaymentSerializer(serializers.Serializer):
    """Serializer for a payment received against a loan."""

    amount = serializers.DecimalField(
        max_digits=15,
        decimal_places=2,
        required=True,
        help_text="Amount received. Must be positive.",
    )
    payment_method = serializers.ChoiceField(
        choices=Payment.Method.choices,
        required=False,
        allow_blank=True,
        default='',
    )
    transaction_id = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default='',
    )
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    recorded_by = serializers.CharField(
        max_length=150, required=False, allow_blank=True, default='',
    )


class PaymentSerializer(serializers.ModelSerializer):
    """A ledger entry, with the installment number it settled."""

    installment_number = serializers.IntegerField(
        source='installment.installment_number',
        allow_null=True,
        default=None,
    )

    class Meta:
        model = Payment
        fields = (
            'id', 'payment_number', 'loan', 'installment_number', 'amount',
            'payment_method', 'transaction_id', 'payment_type', 'remarks',
            'recorded_by', 'created_at',
        )


class RecordPaymentResponseSerializer(serializers.Serializer):
    """The recorded payment plus the loan's balance after it."""

    payment = PaymentSerializer()
    outstanding_balance = serializers.DecimalField(max_digits=15, decimal_places=2)
    loan_status = serializers.CharField()
