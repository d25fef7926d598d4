"""
Tests for portfolio reports.
"""

from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.core.tasks import mark_overdue_installments
from apps.loans.services import PaymentService, ReportService
from tests.factories import make_loan


@override_settings(API_KEYS={'test-key': 'tester'})
class ReportTests(TestCase):
    """Test GET /api/reports/<report_type>."""

    def setUp(self):
        self.client = APIClient()
        self.header = {'HTTP_X_API_KEY': 'test-key'}
        self.loan = make_loan()

    def get(self, report_type):
        return self.client.get(f'/api/reports/{report_type}', **self.header)

    def test_loan_register(self):
        response = self.get('loan_register')
        self.assertEqual(response.status_code, 200)
        summary = response.json()['summary']
        self.assertEqual(Decimal(str(summary['total_disbursed'])), Decimal('100000'))
        self.assertEqual(Decimal(str(summary['total_outstanding'])), Decimal('106618.56'))
        self.assertEqual(summary['active_loans'], 1)
        self.assertEqual(summary['closed_loans'], 0)
        self.assertEqual(len(response.json()['rows']), 1)

    def test_collection(self):
        PaymentService.record_payment(self.loan.pk, Decimal('8884.88'))
        PaymentService.record_payment(self.loan.pk, Decimal('500.00'))

        report = ReportService.collection()

        self.assertEqual(report['summary']['total_collected'], Decimal('9384.88'))
        self.assertEqual(report['summary']['by_payment_type'], {'emi': Decimal('9384.88')})
        self.assertEqual(len(report['rows']), 2)

    def test_overdue(self):
        mark_overdue_installments.apply(kwargs={'as_of': '2024-04-01'}).get()

        report = ReportService.overdue()

        self.assertEqual(report['summary']['overdue_installments'], 2)
        self.assertEqual(report['summary']['total_overdue'], Decimal('17769.76'))
        self.assertEqual(report['summary']['total_late_fees'], Decimal('373.17'))
        self.assertEqual(
            [row['installment_number'] for row in report['rows']],
            [1, 2],
        )

    def test_empty_overdue(self):
        response = self.get('overdue')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['summary']['overdue_installments'], 0)
        self.assertEqual(response.json()['rows'], [])

    def test_unknown_report(self):
        response = self.get('nonsense')
        self.assertEqual(response.status_code, 400)
