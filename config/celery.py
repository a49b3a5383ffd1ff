import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("etiket")

# All CELERY_* keys in Django settings configure the app
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
