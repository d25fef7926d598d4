"""
Borrower model for the lending back office.
"""

from django.db import models


class Borrower(models.Model):
    """
    A person who applies for and repays loans.

    Login credentials live outside this service; the back office
    only keeps contact details.
    """

    first_name = models.CharField(
        max_length=100,
        help_text="Borrower's first name."
    )
    last_name = models.CharField(
        max_length=100,
        help_text="Borrower's last name."
    )
    email = models.EmailField(
        unique=True,
        help_text="Borrower's email address."
    )
    phone_number = models.CharField(
        max_length=20,
        blank=True,
        db_index=True,
        help_text="Borrower's phone number."
    )
    address = models.TextField(
        blank=True,
        help_text="Borrower's postal address."
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive borrowers cannot submit new applications."
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'borrowers'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.first_name} {self.last_name} (ID: {self.pk})"

    @property
    def full_name(self):
        """Returns the borrower's full name."""
        return f"{self.first_name} {self.last_name}"
