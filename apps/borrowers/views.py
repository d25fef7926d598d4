"""
Borrower views for the lending back office.

Views are thin; business logic lives in the service layer.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.borrowers.serializers import (
    BorrowerResponseSerializer,
    RegisterBorrowerSerializer,
)
from apps.borrowers.services import BorrowerService

logger = logging.getLogger(__name__)


class RegisterBorrowerView(APIView):
    """
    POST /api/register

    Register a new borrower in the system.
    """

    def post(self, request):
        """Handle borrower registration."""
        serializer = RegisterBorrowerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        borrower = BorrowerService.register(serializer.validated_data)

        response_serializer = BorrowerResponseSerializer({
            'borrower_id': borrower.pk,
            'name': borrower.full_name,
            'email': borrower.email,
            'phone_number': borrower.phone_number,
        })

        return Response(
            response_serializer.data,
            status=status.HTTP_201_CREATED,
        )
