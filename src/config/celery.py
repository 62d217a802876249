"""
Celery application for the storefront API.

DJANGO_SETTINGS_MODULE is set before the app is instantiated so Celery
reads the Django settings (``CELERY_`` prefix), including the beat schedule
that drives the outbox relay and OTP housekeeping.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py from every installed app
app.autodiscover_tasks()
