import platform

from celery import Celery
from celery.schedules import crontab

from plancache.config import REDIS_URL

# macOS fork is unsafe with native extensions
if platform.system() == "Darwin":
    pool_type = "solo"
else:
    pool_type = "prefork"

celery_app = Celery(
    "plancache",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["plancache.tasks.scheduler"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_pool=pool_type,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    'cleanup-cached-plans-daily': {
        'task': 'plancache.tasks.scheduler.cleanup_cached_plans',
        'schedule': crontab(hour=3, minute=0)
    },
}
