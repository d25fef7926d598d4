"""
Custom exceptions and DRF exception handler for the lending back office.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BorrowerNotFoundError(APIException):
    """Raised when a borrower does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Borrower not found.'
    default_code = 'borrower_not_found'


class ProductNotFoundError(APIException):
    """Raised when a loan product does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Loan product not found.'
    default_code = 'product_not_found'


class ApplicationNotFoundError(APIException):
    """Raised when a loan application does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Application not found.'
    default_code = 'application_not_found'


class LoanNotFoundError(APIException):
    """Raised when a loan does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Loan not found.'
    default_code = 'loan_not_found'


class ApplicationAlreadyReviewedError(APIException):
    """Raised when approving or rejecting an application that is not pending."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Application has already been reviewed.'
    default_code = 'application_already_reviewed'


class LoanClosedError(APIException):
    """Raised when a payment is recorded against a closed loan."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Loan is already closed.'
    default_code = 'loan_closed'


class InvalidPaymentAmountError(APIException):
    """Raised when a payment amount is zero or negative."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Valid payment amount is required.'
    default_code = 'invalid_payment_amount'


class DataIngestionError(Exception):
    """Raised when data ingestion fails."""

    pass


def custom_exception_handler(exc, context):
    """
    Custom DRF exception handler that returns consistent error responses.

    Handles all DRF exceptions and adds logging for server errors.
    """
    response = exception_handler(exc, context)

    if response is not None:
        error_data = {
            'error': True,
            'status_code': response.status_code,
            'detail': response.data,
        }
        response.data = error_data
    else:
        # Unhandled exceptions: log and return 500
        logger.exception(
            "Unhandled exception in %s",
            context.get('view', 'unknown'),
            exc_info=exc,
        )
        response = Response(
            {
                'error': True,
                'status_code': 500,
                'detail': 'An unexpected error occurred. Please try again later.',
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response
