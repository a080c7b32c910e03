"""
Override mutation service.

Validates ``POST /api/overrides`` requests and dispatches them to the
override store. Every successful mutation schedules a best-effort refresh of
the wallet's cached holdings.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ValidationError
from app.models.token_override import OverrideType
from app.schemas.override import (
    OverrideMutationRequest,
    OverrideMutationResult,
    TokenOverrideResponse,
)
from app.services.override_store import OverrideRepository
from app.tasks.holdings_refresh import mark_holdings_for_refresh

logger = logging.getLogger(__name__)

VALID_ACTIONS = ("upsert", "delete", "bulk_delete")
VALID_OVERRIDE_TYPES = tuple(t.value for t in OverrideType)


def validate_mutation(request: OverrideMutationRequest) -> None:
    """
    Check a mutation request, in the order the checks are reported.

    Raises:
        ValidationError: with a message naming the first problem found
    """
    if request.action not in VALID_ACTIONS:
        raise ValidationError("Invalid action type")

    if request.action == "bulk_delete":
        if not request.wallet_address:
            raise ValidationError("Wallet address required for bulk delete")
        return

    if not request.override_type:
        raise ValidationError("Missing override type")

    if request.override_type not in VALID_OVERRIDE_TYPES:
        raise ValidationError("Invalid override type")

    if request.override_type == OverrideType.SYMBOL.value and not request.symbol and not request.contract_address:
        raise ValidationError("Symbol name or contract address required for symbol overrides")

    if request.override_type == OverrideType.ADDRESS.value and not request.contract_address:
        raise ValidationError("Contract address required for address overrides")


class OverrideService:
    """Apply validated override mutations for one user."""

    def __init__(self, db: AsyncSession):
        self.repository = OverrideRepository(db)

    def _schedule_refresh(
        self,
        user_id: str,
        wallet_address: Optional[str],
        contract_address: Optional[str],
        chain: Optional[str],
        action: str
    ) -> None:
        """Queue the holdings refresh; scheduling problems never fail the mutation."""
        if not wallet_address:
            return
        try:
            mark_holdings_for_refresh.delay(
                user_id=user_id,
                wallet_address=wallet_address,
                contract_address=contract_address,
                chain=chain,
                action=action
            )
        except Exception as e:
            logger.warning(f"Failed to schedule holdings refresh for wallet {wallet_address}: {e}")

    async def apply(
        self,
        user_id: str,
        request: OverrideMutationRequest,
        user_agent: Optional[str] = None
    ) -> OverrideMutationResult:
        """
        Validate and apply a mutation.

        Raises:
            ValidationError: invalid request
            NotFoundError: delete targets an override held by another wallet scope
            UpstreamError: database failure
        """
        validate_mutation(request)

        if request.action == "bulk_delete":
            affected = await self.repository.bulk_delete(user_id, request.wallet_address)
            self._schedule_refresh(user_id, request.wallet_address, None, None, "bulk_delete")
            return OverrideMutationResult(
                action="bulk_delete",
                message=f"All overrides removed for wallet {request.wallet_address}",
                affected=affected
            )

        override_type = OverrideType(request.override_type)

        if request.action == "delete":
            affected = await self.repository.delete(
                user_id=user_id,
                override_type=override_type,
                contract_address=request.contract_address,
                chain=request.chain,
                wallet_address=request.wallet_address,
                symbol=request.symbol
            )
            if affected:
                self._schedule_refresh(
                    user_id, request.wallet_address, request.contract_address, request.chain, "delete"
                )
            return OverrideMutationResult(action="delete", affected=affected)

        override = await self.repository.upsert(
            user_id=user_id,
            override_type=override_type,
            contract_address=request.contract_address,
            override_value=request.override_value,
            chain=request.chain,
            wallet_address=request.wallet_address,
            symbol=request.symbol,
            wallet_id=request.wallet_id,
            metadata={
                "created_via": "api",
                "user_agent": user_agent or "unknown",
            }
        )
        self._schedule_refresh(
            user_id, request.wallet_address, request.contract_address, request.chain, "upsert"
        )
        return OverrideMutationResult(
            action="upsert",
            data=TokenOverrideResponse.model_validate(override),
            wallet_address=request.wallet_address
        )
