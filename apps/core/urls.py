"""
Core app URL configuration for background task triggers.
"""

from django.urls import path

from apps.core.views import TriggerOverdueSweepView, TriggerProductIngestionView

urlpatterns = [
    path(
        'ingest-products',
        TriggerProductIngestionView.as_view(),
        name='ingest-products',
    ),
    path(
        'mark-overdue',
        TriggerOverdueSweepView.as_view(),
        name='mark-overdue',
    ),
]
