"""
Token override model - user corrections for mis-identified tokens.

An override maps an on-chain identifier (symbol or contract address) to a
CoinGecko id. ``override_value = NULL`` is meaningful: it excludes the token
from price lookup. ``wallet_address = NULL`` makes the override global.

Rows are never hard-deleted; replacing or removing an override flips
``is_active`` off. A partial unique index guarantees at most one active row
per (user, type, key, chain, scope).
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import String, DateTime, JSON, Enum as SQLEnum, Index, text
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.database import Base


GLOBAL_SCOPE = "global"


class OverrideType(str, enum.Enum):
    """What the override is keyed on."""
    SYMBOL = "symbol"
    ADDRESS = "address"


class OverrideAction(str, enum.Enum):
    """Audit trail of the last change applied to a row."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def override_key_for(override_type: OverrideType, contract_address: Optional[str], symbol: Optional[str]) -> str:
    """
    Uniqueness key of an override.

    Address overrides use the contract address. Symbol overrides use
    ``sym:<symbol>``, or ``addr:<contract>`` for legacy rows saved without a
    symbol, so a legacy row never shares a key with a symbol named like its
    contract.
    """
    if override_type == OverrideType.SYMBOL:
        if symbol:
            return f"sym:{symbol}"
        return f"addr:{contract_address or ''}"
    return contract_address or ""


def wallet_scope_for(wallet_address: Optional[str]) -> str:
    """Scope column value; global overrides share one literal scope."""
    return wallet_address if wallet_address else GLOBAL_SCOPE


class TokenOverride(Base):
    """A symbol or address override, global or scoped to one wallet."""
    __tablename__ = "token_overrides"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Owner of the override"
    )
    contract_address: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="",
        comment="Token contract / mint address (empty for symbol-only overrides)"
    )
    symbol: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Token symbol (symbol overrides only)"
    )
    chain: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="eth",
        comment="Chain identifier (eth, bsc, polygon, solana, ...)"
    )
    override_type: Mapped[OverrideType] = mapped_column(
        SQLEnum(OverrideType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        comment="symbol or address"
    )
    override_value: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        comment="CoinGecko id; NULL excludes the token from price lookup"
    )
    wallet_address: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True,
        comment="Wallet scope; NULL for global overrides"
    )
    wallet_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Client-side wallet identifier"
    )

    # Derived columns backing the uniqueness guarantee
    override_key: Mapped[str] = mapped_column(
        String(160),
        nullable=False,
        comment="sym:<symbol>, addr:<contract> or the contract address"
    )
    wallet_scope: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default=GLOBAL_SCOPE,
        comment="wallet_address, or 'global'"
    )

    is_active: Mapped[bool] = mapped_column(
        nullable=False,
        default=True,
        comment="False once replaced or deleted"
    )
    action: Mapped[OverrideAction] = mapped_column(
        SQLEnum(OverrideAction, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OverrideAction.CREATE,
        comment="Last change applied to the row"
    )
    extra_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
        comment="created_via / user_agent"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_token_overrides_user_active", "user_id", "is_active"),
        Index(
            "uq_token_overrides_active_key",
            "user_id", "override_type", "override_key", "chain", "wallet_scope",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    @property
    def is_global(self) -> bool:
        return self.wallet_address is None

    def __repr__(self) -> str:
        return (
            f"<TokenOverride(id={self.id}, type={self.override_type}, key='{self.override_key}', "
            f"chain={self.chain}, scope={self.wallet_scope}, value={self.override_value!r}, "
            f"active={self.is_active})>"
        )
