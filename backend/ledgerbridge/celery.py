"""
Celery application configuration.

Handles async projection processing and scheduled projection health checks.

Usage:
    # Start worker
    celery -A ledgerbridge worker -l INFO

    # Start beat scheduler (for periodic tasks)
    celery -A ledgerbridge beat -l INFO
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledgerbridge.settings")

app = Celery("ledgerbridge")

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
