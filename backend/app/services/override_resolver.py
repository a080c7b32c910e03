"""
Token override resolution.

Merges a user's active overrides into lookup maps keyed by symbol and by
contract address. Global overrides are applied first and wallet-specific
ones second, so a wallet-specific override shadows a global one for the
same key.

A key mapped to ``None`` is an explicit exclusion ("do not price this
token"), which is not the same as the key being absent ("no override").
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import UpstreamError
from app.models.token_override import TokenOverride, OverrideType, GLOBAL_SCOPE
from app.services.override_store import OverrideRepository
from app.utils.address_validation import normalize_token_address

logger = logging.getLogger(__name__)

OverrideMap = Dict[str, Optional[str]]

# Sentinel result of a lookup for a key with no override
NO_OVERRIDE: Tuple[bool, Optional[str]] = (False, None)


@dataclass
class ResolvedOverrides:
    """Override maps for one wallet (or for the global scope)."""
    symbol_overrides: OverrideMap = field(default_factory=dict)
    address_overrides: OverrideMap = field(default_factory=dict)
    wallet_specific: OverrideMap = field(default_factory=dict)
    global_overrides: OverrideMap = field(default_factory=dict)

    def lookup_symbol(self, symbol: Optional[str]) -> Tuple[bool, Optional[str]]:
        """Return ``(present, value)`` for a symbol override."""
        if symbol and symbol in self.symbol_overrides:
            return True, self.symbol_overrides[symbol]
        return NO_OVERRIDE

    def lookup_address(self, token_address: Optional[str]) -> Tuple[bool, Optional[str]]:
        """Return ``(present, value)`` for an address override; EVM hex matches case-insensitively."""
        if not token_address:
            return NO_OVERRIDE
        if token_address in self.address_overrides:
            return True, self.address_overrides[token_address]

        normalized = normalize_token_address(token_address)
        for key, value in self.address_overrides.items():
            if normalize_token_address(key) == normalized:
                return True, value
        return NO_OVERRIDE

    def is_empty(self) -> bool:
        return not self.symbol_overrides and not self.address_overrides


def _row_key(row: TokenOverride) -> str:
    """Symbol overrides are keyed by symbol, falling back to the contract address for legacy rows."""
    if row.override_type == OverrideType.SYMBOL:
        return row.symbol or row.contract_address
    return row.contract_address


def merge_overrides(rows: Iterable[TokenOverride]) -> ResolvedOverrides:
    """
    Merge override rows into lookup maps.

    Args:
        rows: Active override rows, any mix of global and wallet-scoped

    Returns:
        ResolvedOverrides where wallet-specific rows win over global rows
    """
    rows = list(rows)
    # Stable sort: global first, then wallet rows, insertion order kept within each group
    ordered = sorted(rows, key=lambda row: 0 if row.wallet_address is None else 1)

    resolved = ResolvedOverrides()
    for row in ordered:
        key = _row_key(row)
        if not key:
            logger.debug(f"Skipping override {row.id} without a usable key")
            continue

        if row.override_type == OverrideType.ADDRESS:
            resolved.address_overrides[key] = row.override_value
        else:
            resolved.symbol_overrides[key] = row.override_value

        if row.wallet_address is None:
            resolved.global_overrides[key] = row.override_value
        else:
            resolved.wallet_specific[key] = row.override_value

    return resolved


def group_overrides(rows: Iterable[TokenOverride]) -> Dict[str, Dict[str, OverrideMap]]:
    """
    Group override rows by wallet scope.

    Returns:
        ``{scope: {"addressOverrides": {...}, "symbolOverrides": {...}}}`` where
        global rows live under the ``"global"`` scope
    """
    groups: Dict[str, Dict[str, OverrideMap]] = {}
    for row in rows:
        key = _row_key(row)
        if not key:
            continue
        scope = row.wallet_address or GLOBAL_SCOPE
        group = groups.setdefault(scope, {"addressOverrides": {}, "symbolOverrides": {}})
        if row.override_type == OverrideType.ADDRESS:
            group["addressOverrides"][key] = row.override_value
        else:
            group["symbolOverrides"][key] = row.override_value
    return groups


class OverrideResolver:
    """Resolve a user's overrides from the store."""

    def __init__(self, db: AsyncSession):
        self.repository = OverrideRepository(db)

    async def _load(self, user_id: str, wallet_address: Optional[str], include_global: bool) -> List[TokenOverride]:
        try:
            return await self.repository.list_active(user_id, wallet_address, include_global)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching overrides for user {user_id}: {e}")
            raise UpstreamError("Failed to fetch overrides", status_code=500)

    async def resolve(
        self,
        user_id: str,
        wallet_address: Optional[str] = None,
        include_global: bool = True
    ) -> ResolvedOverrides:
        """
        Resolve the override maps that apply to a wallet.

        Without a wallet only global overrides are considered, since other
        wallets' overrides never apply to a lookup.

        Raises:
            UpstreamError: when the query fails (not retried)
        """
        if wallet_address:
            rows = await self._load(user_id, wallet_address, include_global)
        else:
            rows = await self._load(user_id, None, False)
        return merge_overrides(rows)

    async def resolve_grouped(
        self,
        user_id: str,
        include_global: bool = True
    ) -> Tuple[Dict[str, Dict[str, OverrideMap]], Dict[str, OverrideMap]]:
        """
        Resolve a user's overrides grouped by wallet.

        With ``include_global`` every active row is returned; without it only
        the global rows are loaded, so ``wallet_groups`` comes back empty.

        Returns:
            ``(wallet_groups, global_maps)``; wallet_groups never contains the
            global scope
        """
        rows = await self._load(user_id, None, include_global)
        groups = group_overrides(rows)
        global_maps = groups.pop(GLOBAL_SCOPE, {"addressOverrides": {}, "symbolOverrides": {}})
        return groups, global_maps
