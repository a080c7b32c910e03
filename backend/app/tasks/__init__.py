"""
Background tasks package.

Periodic tasks are scheduled via Celery Beat in celery_app.py.
"""
from app.tasks.holdings_refresh import mark_holdings_for_refresh
from app.tasks.coin_list import refresh_coin_list

__all__ = [
    "mark_holdings_for_refresh",
    "refresh_coin_list",
]
