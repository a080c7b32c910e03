"""
Coin list refresh task.

Refreshes the cached CoinGecko coin list once a day so symbol resolution
never waits on the (large) upstream download during a request.
"""
from celery import shared_task
import asyncio
import logging

from app.celery_app import celery_app  # noqa: F401
from app.errors import UpstreamError
from app.services.price_service import PriceService

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name="app.tasks.coin_list.refresh_coin_list",
    autoretry_for=(UpstreamError,),
    retry_kwargs={'max_retries': 3, 'countdown': 300},
    retry_backoff=True
)
def refresh_coin_list(self):
    """
    Fetch and cache the CoinGecko coin list.

    Returns:
        dict: ``{"status": "success", "coins": <count>}``
    """
    logger.info("Starting coin list refresh task")
    coins = asyncio.run(PriceService().refresh_coin_list())
    logger.info(f"Coin list refresh complete: {len(coins)} coins")
    return {"status": "success", "coins": len(coins)}
