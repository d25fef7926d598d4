"""
Celery application for background tasks (ingestion, overdue sweep).

Start a worker with:  celery -A config worker -B -l info
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('lending')

# Read CELERY_* settings from Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
