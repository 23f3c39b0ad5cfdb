"""
Celery configuration for the settlement service.

Celery runs the asynchronous side of settlement:
- Processing verified Stripe webhook events off the request path
- Payout retries triggered when a payee becomes eligible
- Scheduled sweeps (pending payouts, failed or stuck webhook events)

Redis is both the message broker and result backend. Periodic schedules are
stored in the database by django-celery-beat and created by data migrations
in the settlements app.

Usage:
    from settlements.tasks import retry_payouts_for_payee

    retry_payouts_for_payee.delay(payee_id)
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
