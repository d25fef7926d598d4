"""
Loan URL configuration.
"""

from django.urls import path

from apps.loans.views import (
    ApplicationListView,
    ApproveApplicationView,
    BorrowerApplicationsView,
    BorrowerLoansView,
    CalculateEMIView,
    LoanDetailView,
    LoanPaymentsView,
    ProductListView,
    RejectApplicationView,
    ReportView,
)

urlpatterns = [
    path('products', ProductListView.as_view(), name='products'),
    path('calculate-emi', CalculateEMIView.as_view(), name='calculate-emi'),
    path('applications', ApplicationListView.as_view(), name='applications'),
    path(
        'applications/<int:application_id>/approve',
        ApproveApplicationView.as_view(),
        name='approve-application',
    ),
    path(
        'applications/<int:application_id>/reject',
        RejectApplicationView.as_view(),
        name='reject-application',
    ),
    path('loans/<int:loan_id>', LoanDetailView.as_view(), name='loan-detail'),
    path(
        'loans/<int:loan_id>/payments',
        LoanPaymentsView.as_view(),
        name='loan-payments',
    ),
    path(
        'borrowers/<int:borrower_id>/loans',
        BorrowerLoansView.as_view(),
        name='borrower-loans',
    ),
    path(
        'borrowers/<int:borrower_id>/applications',
        BorrowerApplicationsView.as_view(),
        name='borrower-applications',
    ),
    path('reports/<str:report_type>', ReportView.as_view(), name='reports'),
]
