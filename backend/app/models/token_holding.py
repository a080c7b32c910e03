"""
Token holding model - last aggregated balance per wallet token.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlalchemy import String, Numeric, DateTime, JSON, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TokenHolding(Base):
    """
    Cached holding written after a portfolio aggregation.

    ``needs_refresh`` is raised when an override touching the token changes,
    so the next read knows the stored value is stale.
    """
    __tablename__ = "token_holdings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(128), nullable=False)
    contract_address: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    chain: Mapped[str] = mapped_column(String(20), nullable=False, default="eth")
    symbol: Mapped[str] = mapped_column(String(50), nullable=False)

    balance: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False, default=Decimal("0"))
    price_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(28, 10), nullable=True)
    value_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(28, 2), nullable=True)

    needs_refresh: Mapped[bool] = mapped_column(nullable=False, default=False)
    extra_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "wallet_address", "contract_address", "chain", "symbol",
            name="uq_token_holdings_token"
        ),
        Index("idx_token_holdings_wallet", "user_id", "wallet_address"),
    )

    def __repr__(self) -> str:
        return (
            f"<TokenHolding(wallet='{self.wallet_address}', symbol='{self.symbol}', "
            f"balance={self.balance}, needs_refresh={self.needs_refresh})>"
        )
