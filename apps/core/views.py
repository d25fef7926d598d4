"""
Core views for the lending back office.
"""

import logging

from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.tasks import ingest_loan_products, mark_overdue_installments

logger = logging.getLogger(__name__)


def health_check(request):
    """
    GET /health/

    Simple health check endpoint for Docker and load balancers.
    Exempt from API key authentication.
    """
    return JsonResponse({'status': 'healthy'}, status=200)


class TriggerProductIngestionView(APIView):
    """
    POST /api/ingest-products

    Queue a background load of loan_products.xlsx.
    """

    def post(self, request):
        task = ingest_loan_products.delay()

        logger.info("Product ingestion triggered, task=%s", task.id)

        return Response(
            {
                'message': 'Product ingestion task has been triggered.',
                'task_id': task.id,
            },
            status=status.HTTP_202_ACCEPTED,
        )


class TriggerOverdueSweepView(APIView):
    """
    POST /api/mark-overdue

    Run the overdue sweep now instead of waiting for the nightly beat.
    """

    def post(self, request):
        task = mark_overdue_installments.delay()

        logger.info("Overdue sweep triggered, task=%s", task.id)

        return Response(
            {
                'message': 'Overdue sweep has been triggered.',
                'task_id': task.id,
            },
            status=status.HTTP_202_ACCEPTED,
        )
