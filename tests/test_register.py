"""
Tests for borrower registration API.
"""

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.borrowers.models import Borrower


@override_settings(API_KEYS={'test-key': 'tester'})
class RegisterBorrowerTests(TestCase):
    """Test POST /api/register."""

    def setUp(self):
        self.client = APIClient()
        self.url = '/api/register'
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.valid_data = {
            'first_name': 'John',
            'last_name': 'Doe',
            'email': 'John.Doe@Example.com',
            'phone_number': '+919876543210',
            'address': '12 MG Road, Bengaluru',
        }

    def test_register_success(self):
        """Successful registration returns 201 with expected fields."""
        response = self.client.post(self.url, self.valid_data, format='json', **self.header)
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertIn('borrower_id', data)
        self.assertEqual(data['name'], 'John Doe')
        self.assertEqual(data['email'], 'john.doe@example.com')
        self.assertEqual(data['phone_number'], '+919876543210')

    def test_borrower_created_in_db(self):
        """Borrower should be persisted in database."""
        self.client.post(self.url, self.valid_data, format='json', **self.header)
        self.assertEqual(Borrower.objects.count(), 1)
        borrower = Borrower.objects.first()
        self.assertEqual(borrower.first_name, 'John')
        self.assertEqual(borrower.address, '12 MG Road, Bengaluru')
        self.assertTrue(borrower.is_active)

    def test_optional_fields(self):
        data = {'first_name': 'Asha', 'last_name': 'Rao', 'email': 'asha@example.com'}
        response = self.client.post(self.url, data, format='json', **self.header)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['phone_number'], '')

    def test_missing_first_name(self):
        """Missing required field returns 400."""
        data = {**self.valid_data}
        del data['first_name']
        response = self.client.post(self.url, data, format='json', **self.header)
        self.assertEqual(response.status_code, 400)

    def test_duplicate_email_rejected(self):
        """Email is unique regardless of case."""
        self.client.post(self.url, self.valid_data, format='json', **self.header)
        data = {**self.valid_data, 'email': 'john.doe@EXAMPLE.com'}
        response = self.client.post(self.url, data, format='json', **self.header)
        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.json()['detail'])
        self.assertEqual(Borrower.objects.count(), 1)

    def test_invalid_email(self):
        data = {**self.valid_data, 'email': 'not-an-email'}
        response = self.client.post(self.url, data, format='json', **self.header)
        self.assertEqual(response.status_code, 400)

    def test_invalid_phone_number(self):
        """Invalid phone number should be rejected."""
        data = {**self.valid_data, 'phone_number': '98-76-54'}
        response = self.client.post(self.url, data, format='json', **self.header)
        self.assertEqual(response.status_code, 400)
