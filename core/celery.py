from __future__ import annotations

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings.dev")

# Beat picks up CELERY_BEAT_SCHEDULE (the unlike timeout sweep) from Django settings.
app = Celery("matchlink")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
