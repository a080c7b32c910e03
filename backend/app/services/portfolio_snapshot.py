"""
Portfolio snapshot persistence.

After an aggregation the summary is cached in Redis and its tokens are
written to ``token_holdings`` with ``needs_refresh`` cleared. Both writes
are best effort; a failure is logged and the caller still gets its summary.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import TokenHolding
from app.schemas.portfolio import PortfolioSummary
from app.services.cache import cache as default_cache, CacheService

logger = logging.getLogger(__name__)


def snapshot_key(user_id: str, wallet_address: str) -> str:
    return f"portfolio_snapshot:{user_id}:{wallet_address}"


class PortfolioSnapshotStore:
    """Cache and persist aggregated portfolios."""

    def __init__(self, db: AsyncSession, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache if cache is not None else default_cache

    def get_cached(self, user_id: str, wallet_address: str) -> Optional[PortfolioSummary]:
        data = self.cache.get(snapshot_key(user_id, wallet_address))
        if not data:
            return None
        try:
            return PortfolioSummary.model_validate(data)
        except ValueError as e:
            logger.debug(f"Discarding unreadable portfolio snapshot for {wallet_address}: {e}")
            return None

    def invalidate(self, user_id: str, wallet_address: Optional[str] = None) -> int:
        """Drop cached snapshots of one wallet, or of every wallet of the user."""
        if wallet_address:
            return 1 if self.cache.delete(snapshot_key(user_id, wallet_address)) else 0
        return self.cache.clear_pattern(f"portfolio_snapshot:{user_id}:*")

    async def save(self, user_id: str, summary: PortfolioSummary) -> None:
        wallet_address = summary.wallet_address
        if not wallet_address:
            return

        self.cache.set(
            snapshot_key(user_id, wallet_address),
            summary.model_dump(mode="json"),
            settings.portfolio_snapshot_ttl
        )

        try:
            result = await self.db.execute(
                select(TokenHolding).where(
                    TokenHolding.user_id == user_id,
                    TokenHolding.wallet_address == wallet_address
                )
            )
            existing = {
                (h.contract_address, h.chain, h.symbol): h
                for h in result.scalars().all()
            }

            now = datetime.utcnow()
            for token in summary.tokens:
                key = (token.token_address, token.chain or "unknown", token.symbol)
                holding = existing.get(key)
                if holding is None:
                    holding = TokenHolding(
                        user_id=user_id,
                        wallet_address=wallet_address,
                        contract_address=key[0],
                        chain=key[1],
                        symbol=key[2],
                    )
                    self.db.add(holding)
                    existing[key] = holding
                holding.balance = Decimal(token.balance)
                holding.price_usd = Decimal(str(token.price_usd))
                holding.value_usd = Decimal(str(round(token.value_usd, 2)))
                holding.needs_refresh = False
                holding.extra_metadata = {
                    "price_source": token.price_source.value,
                    "excluded": token.excluded,
                }
                holding.updated_at = now

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to persist holdings for wallet {wallet_address}: {e}")
