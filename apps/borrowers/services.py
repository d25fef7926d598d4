"""
Borrower service layer.

All borrower-related business logic resides here.
Views delegate to this service.
"""

import logging

from apps.borrowers.models import Borrower
from apps.core.exceptions import BorrowerNotFoundError

logger = logging.getLogger(__name__)


class BorrowerService:
    """Service class for borrower-related operations."""

    @staticmethod
    def register(validated_data: dict) -> Borrower:
        """
        Register a new borrower.

        Args:
            validated_data: Dict with first_name, last_name, email and
                          optional phone_number, address.

        Returns:
            The newly created Borrower instance.
        """
        borrower = Borrower.objects.create(
            first_name=validated_data['first_name'],
            last_name=validated_data['last_name'],
            email=validated_data['email'],
            phone_number=validated_data.get('phone_number', ''),
            address=validated_data.get('address', ''),
        )

        logger.info(
            "Registered borrower %s (ID: %d)",
            borrower.full_name,
            borrower.pk,
        )

        return borrower

    @staticmethod
    def get_borrower(borrower_id: int) -> Borrower:
        """
        Retrieve a borrower by ID.

        Raises:
            BorrowerNotFoundError: If borrower not found.
        """
        try:
            return Borrower.objects.get(pk=borrower_id)
        except Borrower.DoesNotExist:
            raise BorrowerNotFoundError(
                detail=f"Borrower with ID {borrower_id} not found."
            )
