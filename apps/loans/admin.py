from django.contrib import admin, messages

from apps.loans.models import Installment, Loan, LoanApplication, LoanProduct, Payment
from apps.loans.services import LoanService


@admin.register(LoanProduct)
class LoanProductAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'name', 'min_amount', 'max_amount', 'interest_rate',
        'min_tenure', 'max_tenure', 'late_fee_percentage', 'is_active',
    )
    list_filter = ('is_active',)
    search_fields = ('name',)
    readonly_fields = ('created_at', 'updated_at')


@admin.register(LoanApplication)
class LoanApplicationAdmin(admin.ModelAdmin):
    list_display = (
        'application_number', 'borrower', 'product', 'requested_amount',
        'requested_tenure', 'status', 'reviewed_by', 'created_at',
    )
    list_filter = ('status', 'created_at')
    search_fields = ('application_number', 'borrower__email')
    # Reviews go through ApplicationService
    readonly_fields = (
        'application_number', 'borrower', 'product', 'requested_amount',
        'requested_tenure', 'status', 'remarks', 'reviewed_by', 'reviewed_at',
        'created_at', 'updated_at',
    )

    def has_add_permission(self, request):
        return False


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    can_delete = False
    readonly_fields = (
        'installment_number', 'due_date', 'emi_amount', 'principal_amount',
        'interest_amount', 'paid_amount', 'late_fee', 'status', 'paid_date',
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = (
        'loan_number', 'borrower', 'principal_amount', 'interest_rate',
        'tenure', 'emi_amount', 'outstanding_balance', 'status',
        'disbursed_date',
    )
    list_filter = ('status', 'disbursed_date')
    search_fields = ('loan_number', 'borrower__first_name', 'borrower__last_name')
    readonly_fields = (
        'loan_number', 'application', 'borrower', 'product',
        'principal_amount', 'interest_rate', 'tenure', 'emi_amount',
        'total_payable', 'outstanding_balance', 'disbursed_amount',
        'disbursed_date', 'status', 'created_at', 'updated_at',
    )
    inlines = [InstallmentInline]
    actions = ['mark_defaulted']

    def has_add_permission(self, request):
        return False

    @admin.action(description="Mark selected active loans as defaulted", permissions=['change'])
    def mark_defaulted(self, request, queryset):
        defaulted, skipped = LoanService.mark_defaulted(
            queryset.values_list('pk', flat=True)
        )
        self.message_user(request, f"{defaulted} loan(s) marked as defaulted.")
        if skipped:
            self.message_user(
                request,
                f"{skipped} loan(s) skipped: only active loans can default.",
                level=messages.WARNING,
            )


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        'payment_number', 'loan', 'amount', 'payment_type',
        'payment_method', 'recorded_by', 'created_at',
    )
    list_filter = ('payment_type', 'payment_method')
    search_fields = ('payment_number', 'loan__loan_number', 'transaction_id')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        # Payments go through PaymentService so the schedule and balance follow
        return False
