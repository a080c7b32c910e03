"""
Price API endpoints.
"""
from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List
import logging

from app.config import settings
from app.errors import NotFoundError, PortfolioError, UpstreamError, ValidationError
from app.schemas.price import CryptoPrice, PriceMapResponse
from app.services.price_service import PriceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["prices"])


def get_price_service() -> PriceService:
    return PriceService()


@router.get("/prices", response_model=PriceMapResponse)
async def get_prices(
    ids: str = Query(..., description="Comma-separated CoinGecko ids"),
    prices: PriceService = Depends(get_price_service)
):
    """USD prices for up to 100 CoinGecko ids."""
    coin_ids = list(dict.fromkeys(i.strip().lower() for i in ids.split(",") if i.strip()))
    if not coin_ids:
        raise ValidationError("At least one coin id is required")
    if len(coin_ids) > settings.price_batch_limit:
        raise ValidationError(f"Too many ids requested (max {settings.price_batch_limit})")

    try:
        quotes = await prices.get_prices(coin_ids)
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error fetching prices for {len(coin_ids)} ids: {e}")
        raise UpstreamError("Failed to fetch prices")

    return PriceMapResponse(
        prices=quotes,
        missing=[coin_id for coin_id in coin_ids if coin_id not in quotes]
    )


@router.get("/prices/symbol/{symbol}", response_model=CryptoPrice)
async def get_symbol_price(
    symbol: str,
    prices: PriceService = Depends(get_price_service)
):
    """USD price of one symbol, from CoinGecko or else Coinbase."""
    try:
        price = await prices.get_symbol_price(symbol)
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error fetching price for {symbol}: {e}")
        raise UpstreamError("Failed to fetch price data")

    if price is None:
        raise NotFoundError(f"No price found for {symbol.upper()}")
    return price


@router.get("/coinlist")
async def get_coin_list(prices: PriceService = Depends(get_price_service)) -> List[Dict[str, Any]]:
    """CoinGecko coin list with platforms (cached for 24 hours)."""
    try:
        return await prices.get_coin_list()
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error fetching coin list: {e}")
        raise UpstreamError("Failed to fetch coinlist", status_code=500)
