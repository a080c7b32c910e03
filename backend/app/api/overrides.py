"""
Token override API endpoints.

GET lists the caller's active overrides, either merged for one wallet or
grouped by wallet. POST upserts, deletes or bulk-deletes overrides.
"""
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.errors import PortfolioError, UpstreamError
from app.schemas.override import (
    OverrideMutationRequest,
    OverrideMutationResult,
    OverrideMaps,
    WalletOverridesResponse,
    GroupedOverridesResponse,
)
from app.services.override_resolver import OverrideResolver
from app.services.override_service import OverrideService
from app.services.portfolio_snapshot import PortfolioSnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/overrides", tags=["overrides"])


@router.get("")
async def get_overrides(
    wallet_address: Optional[str] = Query(None, description="Wallet to resolve overrides for"),
    include_global: str = Query("true", description="Set to 'false' to leave out global overrides"),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """
    List active overrides.

    With ``wallet_address`` the wallet's and (optionally) the global
    overrides are merged, wallet-specific entries winning. Without it every
    wallet's overrides are returned grouped by wallet, plus the global ones
    (also repeated at the top level for older clients). ``include_global=false``
    without a wallet narrows the listing to the global overrides.
    """
    include = include_global.lower() != "false"
    resolver = OverrideResolver(db)

    try:
        if wallet_address:
            resolved = await resolver.resolve(user_id, wallet_address, include)
            return WalletOverridesResponse(
                address_overrides=resolved.address_overrides,
                symbol_overrides=resolved.symbol_overrides,
                wallet_specific=resolved.wallet_specific,
                global_overrides=resolved.global_overrides,
                wallet_address=wallet_address,
            ).model_dump(by_alias=True)

        groups, global_maps = await resolver.resolve_grouped(user_id, include)
        return GroupedOverridesResponse(
            wallet_groups={addr: OverrideMaps(**maps) for addr, maps in groups.items()},
            global_overrides=OverrideMaps(**global_maps),
            address_overrides=global_maps["addressOverrides"],
            symbol_overrides=global_maps["symbolOverrides"],
        ).model_dump(by_alias=True)

    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error fetching overrides for user {user_id}: {e}")
        raise UpstreamError("Failed to fetch overrides", status_code=500)


@router.post("", response_model=OverrideMutationResult, response_model_exclude_none=True)
async def mutate_overrides(
    request: OverrideMutationRequest,
    user_agent: Optional[str] = Header(None),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Upsert, delete or bulk-delete overrides.

    ``action`` defaults to ``upsert``. Validation problems answer 400 with
    the reason; deleting an override that belongs to another wallet scope
    answers 404.
    """
    try:
        result = await OverrideService(db).apply(user_id, request, user_agent)
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Error applying override {request.action} for user {user_id}: {e}")
        raise UpstreamError("Internal server error", status_code=500)

    # Cached portfolios priced with the old overrides are stale now
    PortfolioSnapshotStore(db).invalidate(user_id, request.wallet_address)
    return result
