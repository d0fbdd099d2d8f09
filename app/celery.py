"""
Celery application for background catalog work.

Embedding refreshes run on the ``inventory`` queue; the hourly backfill
re-queues products whose refresh ran out of retries.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'app.settings')

app = Celery('shikipilot')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

EMBEDDING_BACKFILL_INTERVAL = 60 * 60

app.conf.update(
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_routes={
        'inventory.*': {'queue': 'inventory'},
    },
    beat_schedule={
        'backfill-missing-product-embeddings': {
            'task': 'inventory.backfill_missing_embeddings',
            'schedule': float(EMBEDDING_BACKFILL_INTERVAL),
        },
    },
)
