"""
Wallet settings model - JSON blobs keyed by settings type.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, DateTime, JSON, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.database import Base


class SettingsType(str, enum.Enum):
    """Kinds of settings blob stored per user."""
    MULTI_WALLET = "multi_wallet"
    GLOBAL_OVERRIDES = "global_overrides"
    INDIVIDUAL_WALLET = "individual_wallet"


class WalletSettings(Base):
    """
    One settings blob per (user, settings_type).

    ``multi_wallet`` holds ``{"wallets": [...]}``; ``global_overrides`` holds
    ``{"addressOverrides": {...}, "symbolOverrides": {...}}``.
    """
    __tablename__ = "wallet_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    settings_type: Mapped[SettingsType] = mapped_column(
        SQLEnum(SettingsType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    settings_data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "settings_type", name="uq_wallet_settings_user_type"),
    )

    def __repr__(self) -> str:
        return f"<WalletSettings(user_id='{self.user_id}', type={self.settings_type})>"
