"""
Celery application configuration for background tasks.

Scheduled tasks:
- 03:00 UTC: refresh_coin_list - Refresh the cached CoinGecko coin list

On-demand tasks:
- mark_holdings_for_refresh - Flag cached holdings after an override change
"""
from celery import Celery
from celery.schedules import crontab
from app.config import settings

# Create Celery instance
celery_app = Celery(
    "walletfolio",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.tasks.holdings_refresh",
        "app.tasks.coin_list",
    ]
)

# Celery configuration
celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,

    # Task configuration
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=86400,  # 24 hours

    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Retry configuration
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Beat schedule
    beat_schedule={
        "refresh-coin-list": {
            "task": "app.tasks.coin_list.refresh_coin_list",
            "schedule": crontab(
                hour=settings.coin_list_refresh_hour,
                minute=settings.coin_list_refresh_minute
            ),
            "options": {
                "expires": 3600,  # Task expires after 1 hour
            }
        },
    },
)

if __name__ == "__main__":
    celery_app.start()
