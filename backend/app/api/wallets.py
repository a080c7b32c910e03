"""
Wallet settings API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.errors import ValidationError
from app.schemas.wallet import MultiWalletSettings, GlobalOverrideSettings
from app.services.wallet_settings import WalletSettingsService
from app.utils.address_validation import detect_chain_family

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wallets", tags=["wallets"])


@router.get("", response_model=MultiWalletSettings, response_model_by_alias=True)
async def get_wallets(
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Tracked wallets of the caller."""
    return await WalletSettingsService(db).get_wallets(user_id)


@router.put("", response_model=MultiWalletSettings, response_model_by_alias=True)
async def save_wallets(
    wallets: MultiWalletSettings,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace the caller's tracked wallets; every address must be a supported format."""
    seen = set()
    for wallet in wallets.wallets:
        if detect_chain_family(wallet.address) is None:
            raise ValidationError(f"Unsupported wallet address format: {wallet.address}")
        if wallet.address in seen:
            raise ValidationError(f"Duplicate wallet address: {wallet.address}")
        seen.add(wallet.address)

    return await WalletSettingsService(db).save_wallets(user_id, wallets)


@router.get("/global-overrides", response_model=GlobalOverrideSettings, response_model_by_alias=True)
async def get_global_overrides(
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await WalletSettingsService(db).get_global_overrides(user_id)


@router.put("/global-overrides", response_model=GlobalOverrideSettings, response_model_by_alias=True)
async def save_global_overrides(
    overrides: GlobalOverrideSettings,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await WalletSettingsService(db).save_global_overrides(user_id, overrides)
