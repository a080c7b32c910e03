"""
Wallet balance and portfolio API endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.errors import PortfolioError, UpstreamError
from app.schemas.balance import TokenBalance
from app.schemas.portfolio import PortfolioSummary
from app.services.override_resolver import OverrideResolver
from app.services.portfolio_aggregator import PortfolioAggregator
from app.services.portfolio_snapshot import PortfolioSnapshotStore
from app.services.wallet_balances import WalletBalanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["portfolio"])


def get_balance_service() -> WalletBalanceService:
    return WalletBalanceService()


def get_aggregator() -> PortfolioAggregator:
    return PortfolioAggregator()


@router.get("/balances/{address}", response_model=List[TokenBalance])
async def get_wallet_balances(
    address: str,
    refresh: bool = Query(False, description="Bypass the in-memory balance cache"),
    balances: WalletBalanceService = Depends(get_balance_service)
):
    """Normalized balances of any supported wallet (EVM, Solana, Bitcoin, Cosmos)."""
    try:
        return await balances.get_balances(address, force_refresh=refresh)
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error fetching balances for {address}: {e}")
        raise UpstreamError("Failed to fetch balances")


@router.get("/portfolio/{address}", response_model=PortfolioSummary)
async def get_wallet_portfolio(
    address: str,
    sort: Optional[str] = Query(None, description="'symbol' to sort tokens by symbol"),
    refresh: bool = Query(False, description="Ignore the cached snapshot"),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    balances: WalletBalanceService = Depends(get_balance_service),
    aggregator: PortfolioAggregator = Depends(get_aggregator)
):
    """
    Priced portfolio of one wallet with the caller's overrides applied.

    Served from the snapshot cache when one is present; otherwise balances
    and prices are fetched, the summary is built and stored.
    """
    snapshots = PortfolioSnapshotStore(db)
    sort_by_symbol = (sort or "").lower() == "symbol"

    try:
        if not refresh:
            cached = snapshots.get_cached(user_id, address)
            if cached is not None:
                if sort_by_symbol:
                    cached.tokens.sort(key=lambda token: token.symbol.upper())
                return cached

        wallet_balances = await balances.get_balances(address, force_refresh=refresh)
        overrides = await OverrideResolver(db).resolve(user_id, address)
        summary = await aggregator.aggregate(
            wallet_balances, overrides, wallet_address=address, sort_by_symbol=sort_by_symbol
        )

        await snapshots.save(user_id, summary)
        return summary

    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error building portfolio for {address}: {e}")
        raise UpstreamError("Failed to build portfolio", status_code=500)
