"""
Wallet settings persistence.

Stores the user's tracked wallets and legacy global override maps as JSON
blobs in ``wallet_settings``, one row per (user, settings_type).
"""
import logging
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import UpstreamError
from app.models import WalletSettings, SettingsType
from app.schemas.wallet import MultiWalletSettings, GlobalOverrideSettings

logger = logging.getLogger(__name__)


class WalletSettingsService:
    """Load and save settings blobs for one user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, user_id: str, settings_type: SettingsType) -> Dict[str, Any]:
        try:
            result = await self.db.execute(
                select(WalletSettings).where(
                    WalletSettings.user_id == user_id,
                    WalletSettings.settings_type == settings_type
                )
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error loading {settings_type.value} settings for user {user_id}: {e}")
            raise UpstreamError("Failed to load wallet settings", status_code=500)
        return row.settings_data if row else {}

    async def _save(self, user_id: str, settings_type: SettingsType, data: Dict[str, Any]) -> None:
        try:
            result = await self.db.execute(
                select(WalletSettings).where(
                    WalletSettings.user_id == user_id,
                    WalletSettings.settings_type == settings_type
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = WalletSettings(user_id=user_id, settings_type=settings_type, settings_data=data)
                self.db.add(row)
            else:
                row.settings_data = data
                row.updated_at = datetime.utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error saving {settings_type.value} settings for user {user_id}: {e}")
            raise UpstreamError("Failed to save wallet settings", status_code=500)

    async def get_wallets(self, user_id: str) -> MultiWalletSettings:
        return MultiWalletSettings.model_validate(await self._load(user_id, SettingsType.MULTI_WALLET))

    async def save_wallets(self, user_id: str, wallets: MultiWalletSettings) -> MultiWalletSettings:
        await self._save(user_id, SettingsType.MULTI_WALLET, wallets.model_dump(by_alias=True))
        logger.info(f"Saved {len(wallets.wallets)} wallets for user {user_id}")
        return wallets

    async def get_global_overrides(self, user_id: str) -> GlobalOverrideSettings:
        return GlobalOverrideSettings.model_validate(await self._load(user_id, SettingsType.GLOBAL_OVERRIDES))

    async def save_global_overrides(self, user_id: str, overrides: GlobalOverrideSettings) -> GlobalOverrideSettings:
        await self._save(user_id, SettingsType.GLOBAL_OVERRIDES, overrides.model_dump(by_alias=True))
        return overrides
