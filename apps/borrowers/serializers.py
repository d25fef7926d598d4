"""
Borrower serializers for the lending back office.
"""

from rest_framework import serializers

from apps.borrowers.models import Borrower


class RegisterBorrowerSerializer(serializers.Serializer):
    """Serializer for borrower registration request."""

    first_name = serializers.CharField(
        max_length=100,
        required=True,
        help_text="Borrower's first name.",
    )
    last_name = serializers.CharField(
        max_length=100,
        required=True,
        help_text="Borrower's last name.",
    )
    email = serializers.EmailField(
        required=True,
        help_text="Borrower's email address.",
    )
    phone_number = serializers.CharField(
        max_length=20,
        required=False,
        allow_blank=True,
        help_text="Borrower's phone number.",
    )
    address = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="Borrower's postal address.",
    )

    def validate_email(self, value):
        """Email addresses identify borrowers, so they must be unique."""
        value = value.lower()
        if Borrower.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A borrower with this email already exists."
            )
        return value

    def validate_phone_number(self, value):
        """Allow digits with an optional leading +."""
        digits = value[1:] if value.startswith('+') else value
        if value and not digits.isdigit():
            raise serializers.ValidationError(
                "Phone number may contain only digits and a leading +."
            )
        return value


class BorrowerResponseSerializer(serializers.Serializer):
    """Serializer for borrower registration response."""

    borrower_id = serializers.IntegerField()
    name = serializers.CharField()
    email = serializers.EmailField()
    phone_number = serializers.CharField(allow_blank=True)


class BorrowerDetailSerializer(serializers.Serializer):
    """Serializer for embedded borrower details in loan response."""

    id = serializers.IntegerField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    email = serializers.EmailField()
    phone_number = serializers.CharField(allow_blank=True)
