"""
Loan views for the lending back office.

Views are thin; business logic lives in the service layer.
"""

import logging
from datetime import date

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import LoanNotFoundError
from apps.core.utils import calculate_emi, calculate_total_payable
from apps.loans.schedule import generate_repayment_schedule
from apps.loans.serializers import (
    ApplicationListItemSerializer,
    ApplicationResponseSerializer,
    ApproveApplicationSerializer,
    CalculateEMISerializer,
    EMIQuoteSerializer,
    LoanDetailSerializer,
    LoanListItemSerializer,
    LoanProductSerializer,
    PaymentSerializer,
    RecordPaymentResponseSerializer,
    RecordPaymentSerializer,
    RejectApplicationSerializer,
    SubmitApplicationSerializer,
)
from apps.loans.services import (
    ApplicationService,
    LoanService,
    PaymentService,
    ProductService,
    ReportService,
)

logger = logging.getLogger(__name__)


def _application_payload(application):
    return ApplicationResponseSerializer({
        'application_id': application.pk,
        'application_number': application.application_number,
        'borrower_id': application.borrower_id,
        'product_id': application.product_id,
        'requested_amount': application.requested_amount,
        'requested_tenure': application.requested_tenure,
        'status': application.status,
        'remarks': application.remarks,
    }).data


class ProductListView(APIView):
    """
    GET /api/products

    List loan products open for applications.
    """

    def get(self, request):
        products = ProductService.list_active()
        serializer = LoanProductSerializer(products, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


class CalculateEMIView(APIView):
    """
    POST /api/calculate-emi

    Quote the EMI and total payable for a set of loan terms, optionally
    with a preview of the repayment schedule.
    """

    def post(self, request):
        serializer = CalculateEMISerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        emi = calculate_emi(data['principal'], data['interest_rate'], data['tenure'])
        response_data = {
            'principal': data['principal'],
            'interest_rate': data['interest_rate'],
            'tenure': data['tenure'],
            'monthly_installment': emi,
            'total_payable': calculate_total_payable(
                data['principal'], data['interest_rate'], data['tenure'],
            ),
        }

        if data['include_schedule']:
            schedule = generate_repayment_schedule(
                data['principal'],
                data['interest_rate'],
                data['tenure'],
                emi,
                data.get('start_date') or date.today(),
            )
            response_data['schedule'] = schedule

        return Response(
            EMIQuoteSerializer(response_data).data,
            status=status.HTTP_200_OK,
        )


class ApplicationPagination(PageNumberPagination):
    """Pagination for application lists."""
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


class ApplicationListView(APIView):
    """
    GET  /api/applications?status=pending: review queue with status counts.
    POST /api/applications: submit a loan application for staff review.
    """

    def get(self, request):
        applications = ApplicationService.list_applications(
            request.query_params.get('status'),
        )

        paginator = ApplicationPagination()
        page = paginator.paginate_queryset(applications, request)
        serializer = ApplicationListItemSerializer(page, many=True)

        response = paginator.get_paginated_response(serializer.data)
        response.data['counts'] = ApplicationService.status_counts()
        return response

    def post(self, request):
        serializer = SubmitApplicationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        application = ApplicationService.submit(**serializer.validated_data)

        return Response(
            _application_payload(application),
            status=status.HTTP_201_CREATED,
        )


class ApproveApplicationView(APIView):
    """
    POST /api/applications/<application_id>/approve

    Approve an application and disburse the loan with its schedule.
    """

    def post(self, request, application_id):
        serializer = ApproveApplicationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data['reviewed_by'] = data['reviewed_by'] or getattr(request, 'api_client', '')

        loan = ApplicationService.approve(application_id=application_id, **data)

        loan = LoanService.get_loan(loan.pk)
        return Response(
            LoanDetailSerializer(loan).data,
            status=status.HTTP_201_CREATED,
        )


class RejectApplicationView(APIView):
    """
    POST /api/applications/<application_id>/reject

    Reject an application with a reason.
    """

    def post(self, request, application_id):
        serializer = RejectApplicationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data['reviewed_by'] = data['reviewed_by'] or getattr(request, 'api_client', '')

        application = ApplicationService.reject(application_id=application_id, **data)

        return Response(
            _application_payload(application),
            status=status.HTTP_200_OK,
        )


class LoanDetailView(APIView):
    """
    GET /api/loans/<loan_id>

    View a loan with borrower details and its full repayment schedule.
    """

    def get(self, request, loan_id):
        loan = LoanService.get_loan(loan_id)

        if loan is None:
            raise LoanNotFoundError(
                detail=f"Loan with ID {loan_id} not found."
            )

        return Response(
            LoanDetailSerializer(loan).data,
            status=status.HTTP_200_OK,
        )


class LoanPagination(PageNumberPagination):
    """Pagination for borrower loan list."""
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


class BorrowerLoansView(APIView):
    """
    GET /api/borrowers/<borrower_id>/loans

    View all loans for a borrower, with pagination.
    """

    def get(self, request, borrower_id):
        loans = LoanService.get_borrower_loans(borrower_id)

        paginator = LoanPagination()
        page = paginator.paginate_queryset(loans, request)
        serializer = LoanListItemSerializer(page, many=True)

        return paginator.get_paginated_response(serializer.data)


class LoanPaymentsView(APIView):
    """
    GET  /api/loans/<loan_id>/payments: payment ledger for a loan.
    POST /api/loans/<loan_id>/payments: record a payment.
    """

    def get(self, request, loan_id):
        payments = PaymentService.get_loan_payments(loan_id)
        return Response(
            PaymentSerializer(payments, many=True).data,
            status=status.HTTP_200_OK,
        )

    def post(self, request, loan_id):
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data['recorded_by'] = data['recorded_by'] or getattr(request, 'api_client', '')

        payment = PaymentService.record_payment(loan_id=loan_id, **data)

        loan = LoanService.get_loan(loan_id)
        response_serializer = RecordPaymentResponseSerializer({
            'payment': payment,
            'outstanding_balance': loan.outstanding_balance,
            'loan_status': loan.status,
        })
        return Response(
            response_serializer.data,
            status=status.HTTP_201_CREATED,
        )


class ReportView(APIView):
    """
    GET /api/reports/<report_type>

    Portfolio reports: loan_register, collection, overdue.
    """

    def get(self, request, report_type):
        report = ReportService.build(report_type)
        return Response(report, status=status.HTTP_200_OK)


class BorrowerApplicationsView(APIView):
    """
    GET /api/borrowers/<borrower_id>/applications

    A borrower's applications, newest first, with pagination.
    """

    def get(self, request, borrower_id):
        applications = ApplicationService.get_borrower_applications(borrower_id)

        paginator = ApplicationPagination()
        page = paginator.paginate_queryset(applications, request)
        serializer = ApplicationListItemSerializer(page, many=True)

        return paginator.get_paginated_response(serializer.data)
