"""
Tests for products, EMI quotes, and application submission and review.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.core.exceptions import ApplicationAlreadyReviewedError
from apps.loans.models import Installment, Loan, LoanApplication
from apps.loans.services import ApplicationService
from tests.factories import make_application, make_borrower, make_product


@override_settings(API_KEYS={'test-key': 'tester'})
class ProductListTests(TestCase):
    """Test GET /api/products."""

    def test_lists_active_products_only(self):
        make_product('Personal Loan')
        make_product('Old Loan', is_active=False)
        response = APIClient().get('/api/products', HTTP_X_API_KEY='test-key')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([p['name'] for p in data], ['Personal Loan'])
        self.assertEqual(data[0]['interest_rate'], '12.00')


@override_settings(API_KEYS={'test-key': 'tester'})
class CalculateEMIViewTests(TestCase):
    """Test POST /api/calculate-emi."""

    def setUp(self):
        self.client = APIClient()
        self.url = '/api/calculate-emi'
        self.header = {'HTTP_X_API_KEY': 'test-key'}

    def test_quote(self):
        response = self.client.post(self.url, {
            'principal': '100000',
            'interest_rate': '12',
            'tenure': 12,
        }, format='json', **self.header)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['monthly_installment'], '8884.88')
        self.assertEqual(data['total_payable'], '106618.56')
        self.assertNotIn('schedule', data)

    def test_quote_with_schedule(self):
        response = self.client.post(self.url, {
            'principal': '100000',
            'interest_rate': '12',
            'tenure': 12,
            'start_date': '2024-01-15',
            'include_schedule': True,
        }, format='json', **self.header)
        self.assertEqual(response.status_code, 200)
        schedule = response.json()['schedule']
        self.assertEqual(len(schedule), 12)
        self.assertEqual(schedule[0]['due_date'], '2024-02-15')
        self.assertEqual(schedule[0]['interest_amount'], '1000.00')
        self.assertEqual(schedule[0]['principal_amount'], '7884.88')

    def test_zero_rate_quote(self):
        response = self.client.post(self.url, {
            'principal': '12000',
            'interest_rate': '0',
            'tenure': 12,
        }, format='json', **self.header)
        self.assertEqual(response.json()['monthly_installment'], '1000.00')

    def test_invalid_tenure(self):
        response = self.client.post(self.url, {
            'principal': '100000',
            'interest_rate': '12',
            'tenure': 0,
        }, format='json', **self.header)
        self.assertEqual(response.status_code, 400)


@override_settings(API_KEYS={'test-key': 'tester'})
class SubmitApplicationTests(TestCase):
    """Test POST /api/applications."""

    def setUp(self):
        self.client = APIClient()
        self.url = '/api/applications'
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.borrower = make_borrower()
        self.product = make_product()

    def payload(self, **overrides):
        data = {
            'borrower_id': self.borrower.pk,
            'product_id': self.product.pk,
            'amount': '100000.00',
            'tenure': 12,
            'purpose': 'Home renovation',
        }
        data.update(overrides)
        return data

    def test_submit_within_range(self):
        response = self.client.post(self.url, self.payload(), format='json', **self.header)
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['requested_amount'], '100000.00')
        self.assertTrue(data['application_number'].startswith('APP-'))
        self.assertEqual(LoanApplication.objects.count(), 1)

    def test_amount_outside_product_range(self):
        response = self.client.post(
            self.url, self.payload(amount='5000.00'), format='json', **self.header,
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('amount', response.json()['detail'])
        self.assertEqual(LoanApplication.objects.count(), 0)

    def test_tenure_outside_product_range(self):
        response = self.client.post(
            self.url, self.payload(tenure=120), format='json', **self.header,
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('tenure', response.json()['detail'])

    def test_inactive_product(self):
        self.product.is_active = False
        self.product.save()
        response = self.client.post(self.url, self.payload(), format='json', **self.header)
        self.assertEqual(response.status_code, 400)
        self.assertIn('product_id', response.json()['detail'])

    def test_unknown_borrower(self):
        response = self.client.post(
            self.url, self.payload(borrower_id=9999), format='json', **self.header,
        )
        self.assertEqual(response.status_code, 404)

    def test_unknown_product(self):
        response = self.client.post(
            self.url, self.payload(product_id=9999), format='json', **self.header,
        )
        self.assertEqual(response.status_code, 404)


@override_settings(API_KEYS={'test-key': 'tester'})
class ApproveApplicationTests(TestCase):
    """Test POST /api/applications/<id>/approve."""

    def setUp(self):
        self.client = APIClient()
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.borrower = make_borrower()
        self.product = make_product()
        self.application = make_application(self.borrower, self.product)
        self.url = f'/api/applications/{self.application.pk}/approve'
        self.data = {
            'disbursed_amount': '100000.00',
            'interest_rate': '12.00',
            'disbursed_date': '2024-01-15',
        }

    def test_approve_creates_loan_and_schedule(self):
        response = self.client.post(self.url, self.data, format='json', **self.header)
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['emi_amount'], '8884.88')
        self.assertEqual(data['total_payable'], '106618.56')
        self.assertEqual(data['outstanding_balance'], '106618.56')
        self.assertEqual(data['status'], 'active')
        self.assertTrue(data['loan_number'].startswith('LN-'))
        self.assertEqual(data['borrower']['email'], 'ravi.kumar@example.com')
        self.assertEqual(len(data['installments']), 12)
        self.assertEqual(data['installments'][0]['due_date'], '2024-02-15')
        self.assertEqual(data['installments'][-1]['due_date'], '2025-01-15')

        self.application.refresh_from_db()
        self.assertEqual(self.application.status, 'approved')
        self.assertEqual(self.application.reviewed_by, 'tester')
        self.assertIsNotNone(self.application.reviewed_at)

    def test_installments_persisted(self):
        self.client.post(self.url, self.data, format='json', **self.header)
        loan = Loan.objects.get()
        installments = list(loan.installments.all())
        self.assertEqual(len(installments), 12)
        self.assertTrue(all(i.status == 'pending' for i in installments))
        self.assertEqual(installments[0].interest_amount, Decimal('1000.00'))
        self.assertEqual(loan.repayments_left, 12)

    def test_explicit_reviewer(self):
        data = dict(self.data, reviewed_by='Priya')
        self.client.post(self.url, data, format='json', **self.header)
        self.application.refresh_from_db()
        self.assertEqual(self.application.reviewed_by, 'Priya')

    def test_double_approve_conflicts(self):
        self.client.post(self.url, self.data, format='json', **self.header)
        response = self.client.post(self.url, self.data, format='json', **self.header)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(Loan.objects.count(), 1)

    def test_unknown_application(self):
        response = self.client.post(
            '/api/applications/9999/approve', self.data, format='json', **self.header,
        )
        self.assertEqual(response.status_code, 404)

    def test_missing_fields(self):
        response = self.client.post(self.url, {}, format='json', **self.header)
        self.assertEqual(response.status_code, 400)

    def test_schedule_failure_rolls_back(self):
        """Loan, schedule and application review commit together or not at all."""
        with patch(
            'apps.loans.services.generate_repayment_schedule',
            side_effect=RuntimeError('boom'),
        ):
            with self.assertRaises(RuntimeError):
                ApplicationService.approve(
                    application_id=self.application.pk,
                    disbursed_amount=Decimal('100000.00'),
                    interest_rate=Decimal('12.00'),
                    disbursed_date=date(2024, 1, 15),
                )

        self.assertEqual(Loan.objects.count(), 0)
        self.assertEqual(Installment.objects.count(), 0)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, 'pending')

    def test_service_rejects_reviewed_application(self):
        ApplicationService.reject(self.application.pk, remarks='Incomplete KYC')
        with self.assertRaises(ApplicationAlreadyReviewedError):
            ApplicationService.approve(
                application_id=self.application.pk,
                disbursed_amount=Decimal('100000.00'),
                interest_rate=Decimal('12.00'),
                disbursed_date=date(2024, 1, 15),
            )


@override_settings(API_KEYS={'test-key': 'tester'})
class RejectApplicationTests(TestCase):
    """Test POST /api/applications/<id>/reject."""

    def setUp(self):
        self.client = APIClient()
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.application = make_application(make_borrower(), make_product())
        self.url = f'/api/applications/{self.application.pk}/reject'

    def test_reject_with_remarks(self):
        response = self.client.post(
            self.url, {'remarks': 'Income proof missing'}, format='json', **self.header,
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'rejected')
        self.assertEqual(data['remarks'], 'Income proof missing')
        self.application.refresh_from_db()
        self.assertEqual(self.application.reviewed_by, 'tester')
        self.assertEqual(Loan.objects.count(), 0)

    def test_reject_requires_remarks(self):
        response = self.client.post(self.url, {'remarks': ''}, format='json', **self.header)
        self.assertEqual(response.status_code, 400)
        self.assertIn('remarks', response.json()['detail'])
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, 'pending')

    def test_reject_twice_conflicts(self):
        self.client.post(self.url, {'remarks': 'No'}, format='json', **self.header)
        response = self.client.post(self.url, {'remarks': 'No'}, format='json', **self.header)
        self.assertEqual(response.status_code, 409)

    def test_unknown_application(self):
        response = self.client.post(
            '/api/applications/9999/reject', {'remarks': 'No'}, format='json', **self.header,
        )
        self.assertEqual(response.status_code, 404)


@override_settings(API_KEYS={'test-key': 'tester'})
class ApplicationListTests(TestCase):
    """Test GET /api/applications and GET /api/borrowers/<id>/applications."""

    def setUp(self):
        self.client = APIClient()
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.borrower = make_borrower()
        self.other = make_borrower(email='meera@example.com', first_name='Meera')
        self.product = make_product()
        self.first = make_application(self.borrower, self.product)
        self.second = make_application(self.borrower, self.product, tenure=24)
        self.third = make_application(self.other, self.product)
        ApplicationService.reject(self.second.pk, remarks='Low income')

    def test_queue_lists_all_with_counts(self):
        response = self.client.get('/api/applications', **self.header)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['count'], 3)
        self.assertEqual(data['counts'], {'pending': 2, 'approved': 0, 'rejected': 1})
        self.assertEqual(
            [row['application_id'] for row in data['results']],
            [self.third.pk, self.second.pk, self.first.pk],
        )
        self.assertEqual(data['results'][0]['product'], 'Personal Loan')

    def test_filter_by_status(self):
        response = self.client.get('/api/applications?status=pending', **self.header)
        data = response.json()
        self.assertEqual(data['count'], 2)
        self.assertTrue(all(row['status'] == 'pending' for row in data['results']))
        # Counts always cover the whole queue
        self.assertEqual(data['counts']['rejected'], 1)

    def test_unknown_status(self):
        response = self.client.get('/api/applications?status=lost', **self.header)
        self.assertEqual(response.status_code, 400)
        self.assertIn('status', response.json()['detail'])

    def test_paginated(self):
        response = self.client.get('/api/applications?page_size=2', **self.header)
        data = response.json()
        self.assertEqual(len(data['results']), 2)
        self.assertIsNotNone(data['next'])

    def test_borrower_applications(self):
        response = self.client.get(
            f'/api/borrowers/{self.borrower.pk}/applications', **self.header,
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['count'], 2)
        self.assertEqual(
            [row['application_id'] for row in data['results']],
            [self.second.pk, self.first.pk],
        )
        self.assertEqual(data['results'][0]['remarks'], 'Low income')

    def test_borrower_applications_unknown_borrower(self):
        response = self.client.get('/api/borrowers/9999/applications', **self.header)
        self.assertEqual(response.status_code, 404)
