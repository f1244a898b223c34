# backend/fuelpos_project/celery.py
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fuelpos_project.settings")

app = Celery("fuelpos")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
