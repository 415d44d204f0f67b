"""
Celery application configuration for studio-sync.

This module configures Celery for:
- Queued entity syncs, serialized per firm
- The daily purge of expired trial firms (Celery Beat)
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init
from kombu import Queue

from studio_sync.utils.config import get_config
from studio_sync.utils.logger import setup_logging

config = get_config()

# Create Celery application
celery_app = Celery(
    "studio_sync",
    broker=config.redis_url,
    backend=config.celery_result_backend,
    include=["studio_sync.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    # Task routing
    task_routes={
        "studio_sync.workers.tasks.sync_entity": {"queue": "sync"},
        "studio_sync.workers.tasks.purge_expired_firms": {"queue": "maintenance"},
    },
    
    # Task queues
    task_queues=(
        Queue("sync", routing_key="sync"),
        Queue("maintenance", routing_key="maintenance"),
        Queue("default", routing_key="default"),
    ),
    task_default_queue="default",
    task_default_routing_key="default",
    
    # Task execution settings
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_time_limit=600,  # 10 minutes hard limit
    task_soft_time_limit=540,  # 9 minutes soft limit
    worker_prefetch_multiplier=1,
    
    # Result settings
    result_expires=3600,
    
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    
    # Timezone
    timezone="UTC",
    enable_utc=True,
    
    # Beat schedule (periodic tasks)
    beat_schedule={
        "purge-expired-firms": {
            "task": "studio_sync.workers.tasks.purge_expired_firms",
            "schedule": crontab(hour=config.purge_schedule_hour, minute=0),
            "options": {"queue": "maintenance"},
        },
    },
    
    # Worker settings
    worker_max_tasks_per_child=1000,
    
    # Logging
    worker_hijack_root_logger=False,
)


@worker_process_init.connect
def init_worker_logging(**kwargs):
    """Give each worker process the studio-sync handlers."""
    setup_logging()
