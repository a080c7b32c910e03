"""
Token override store.

Async repository over the ``token_overrides`` table. Overrides are never
hard-deleted: replacing or removing one flips ``is_active`` off and records
the change in ``action``.

Upserts run the soft-delete of the previous row and the insert of the new
one inside a single transaction. The partial unique index on
(user, type, key, chain, scope) rejects a concurrent writer that raced us to
the insert; that writer rolls back and retries the whole step.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import NotFoundError, UpstreamError
from app.models.token_override import (
    TokenOverride,
    OverrideType,
    OverrideAction,
    override_key_for,
    wallet_scope_for,
)

logger = logging.getLogger(__name__)


class OverrideRepository:
    """Reads and writes token overrides for one database session."""

    def __init__(self, db: AsyncSession, max_attempts: Optional[int] = None):
        self.db = db
        self.max_attempts = max_attempts or settings.override_upsert_max_attempts

    async def list_active(
        self,
        user_id: str,
        wallet_address: Optional[str] = None,
        include_global: bool = True
    ) -> List[TokenOverride]:
        """
        List a user's active overrides.

        - wallet given, include_global: the wallet's rows and the global rows
        - wallet given, not include_global: the wallet's rows only
        - no wallet, include_global: every active row of the user
        - no wallet, not include_global: global rows only

        Rows come back in insertion order.
        """
        query = select(TokenOverride).where(
            TokenOverride.user_id == user_id,
            TokenOverride.is_active.is_(True)
        )

        if wallet_address:
            if include_global:
                query = query.where(or_(
                    TokenOverride.wallet_address == wallet_address,
                    TokenOverride.wallet_address.is_(None)
                ))
            else:
                query = query.where(TokenOverride.wallet_address == wallet_address)
        elif not include_global:
            query = query.where(TokenOverride.wallet_address.is_(None))

        result = await self.db.execute(query.order_by(TokenOverride.id))
        return list(result.scalars().all())

    @staticmethod
    def _key_clause(
        user_id: str,
        override_type: OverrideType,
        override_key: str,
        chain: str
    ):
        """Active rows addressing the same token; symbol overrides match on key alone."""
        clauses = [
            TokenOverride.user_id == user_id,
            TokenOverride.override_type == override_type,
            TokenOverride.override_key == override_key,
            TokenOverride.is_active.is_(True),
        ]
        if override_type == OverrideType.ADDRESS:
            clauses.append(TokenOverride.chain == chain)
        return and_(*clauses)

    async def upsert(
        self,
        user_id: str,
        override_type: OverrideType,
        contract_address: Optional[str],
        override_value: Optional[str],
        chain: str = "eth",
        wallet_address: Optional[str] = None,
        symbol: Optional[str] = None,
        wallet_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> TokenOverride:
        """
        Replace the active override for a key with a new row.

        Raises:
            UpstreamError: when the write keeps failing
        """
        override_type = OverrideType(override_type)
        symbol = symbol if override_type == OverrideType.SYMBOL else None
        override_key = override_key_for(override_type, contract_address, symbol)
        wallet_scope = wallet_scope_for(wallet_address)

        for attempt in range(1, self.max_attempts + 1):
            try:
                now = datetime.utcnow()
                await self.db.execute(
                    update(TokenOverride)
                    .where(
                        self._key_clause(user_id, override_type, override_key, chain),
                        TokenOverride.wallet_scope == wallet_scope
                    )
                    .values(is_active=False, action=OverrideAction.UPDATE, updated_at=now)
                )

                override = TokenOverride(
                    user_id=user_id,
                    contract_address=contract_address or "",
                    symbol=symbol,
                    chain=chain,
                    override_type=override_type,
                    override_value=override_value,
                    wallet_address=wallet_address,
                    wallet_id=wallet_id,
                    override_key=override_key,
                    wallet_scope=wallet_scope,
                    is_active=True,
                    action=OverrideAction.CREATE,
                    extra_metadata=metadata,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(override)
                await self.db.flush()
                await self.db.commit()

                logger.info(
                    f"Saved {override_type.value} override '{override_key}' ({chain}) "
                    f"for user {user_id} in scope {wallet_scope}"
                )
                return override

            except IntegrityError as e:
                await self.db.rollback()
                if attempt == self.max_attempts:
                    logger.error(f"Override upsert for '{override_key}' lost {attempt} races: {e}")
                    raise UpstreamError("Failed to save override", status_code=500)
                logger.warning(
                    f"Concurrent override write for '{override_key}' "
                    f"(attempt {attempt}/{self.max_attempts}), retrying"
                )
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Error saving override '{override_key}': {e}")
                raise UpstreamError("Failed to save override", status_code=500)

        raise UpstreamError("Failed to save override", status_code=500)

    async def delete(
        self,
        user_id: str,
        override_type: OverrideType,
        contract_address: Optional[str],
        chain: str = "eth",
        wallet_address: Optional[str] = None,
        symbol: Optional[str] = None
    ) -> int:
        """
        Soft-delete the active override for a key in the given wallet scope.

        Returns:
            Number of rows deactivated (0 when no override exists for the key)

        Raises:
            NotFoundError: the key is only overridden under a different scope
            UpstreamError: on database failure
        """
        override_type = OverrideType(override_type)
        override_key = override_key_for(override_type, contract_address, symbol)
        wallet_scope = wallet_scope_for(wallet_address)

        try:
            result = await self.db.execute(
                select(TokenOverride)
                .where(self._key_clause(user_id, override_type, override_key, chain))
                .order_by(TokenOverride.id)
            )
            candidates = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error finding override '{override_key}': {e}")
            raise UpstreamError("Failed to find override", status_code=500)

        if not candidates:
            return 0

        matching = [row for row in candidates if row.wallet_scope == wallet_scope]
        if not matching:
            raise NotFoundError("Override not found for specified wallet")

        try:
            now = datetime.utcnow()
            for row in matching:
                row.is_active = False
                row.action = OverrideAction.DELETE
                row.updated_at = now
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting override '{override_key}': {e}")
            raise UpstreamError("Failed to delete override", status_code=500)

        logger.info(f"Deleted {override_type.value} override '{override_key}' for user {user_id} in scope {wallet_scope}")
        return len(matching)

    async def bulk_delete(self, user_id: str, wallet_address: str) -> int:
        """
        Soft-delete every active override scoped to one wallet.

        Global overrides are left untouched.
        """
        try:
            result = await self.db.execute(
                update(TokenOverride)
                .where(
                    TokenOverride.user_id == user_id,
                    TokenOverride.wallet_address == wallet_address,
                    TokenOverride.is_active.is_(True)
                )
                .values(is_active=False, action=OverrideAction.DELETE, updated_at=datetime.utcnow())
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error bulk deleting overrides for wallet {wallet_address}: {e}")
            raise UpstreamError("Failed to bulk delete overrides", status_code=500)

        logger.info(f"Bulk deleted {result.rowcount} overrides for wallet {wallet_address}")
        return result.rowcount
