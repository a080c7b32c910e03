"""
Wallet balance service.

Detects which chain family an address belongs to, fetches the raw balances
from the matching provider, normalizes them and keeps the result in a
short-lived in-memory cache keyed by address.
"""
import logging
from typing import Dict, List, Optional

from app.config import settings
from app.errors import ValidationError
from app.schemas.balance import TokenBalance
from app.services.balance_normalizer import normalize_balances
from app.services.providers import BalanceProvider, default_providers
from app.utils.address_validation import ChainFamily, detect_chain_family
from app.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

_balance_cache = TTLCache(ttl_seconds=settings.balance_cache_ttl, name="balance_cache")


class WalletBalanceService:
    """Fetch normalized balances for any supported wallet address."""

    def __init__(
        self,
        providers: Optional[Dict[ChainFamily, BalanceProvider]] = None,
        balance_cache: Optional[TTLCache] = None
    ):
        self.providers = providers if providers is not None else default_providers()
        self.balance_cache = balance_cache if balance_cache is not None else _balance_cache

    async def get_balances(self, address: str, force_refresh: bool = False) -> List[TokenBalance]:
        """
        Normalized balances of a wallet, in provider order.

        Raises:
            ValidationError: unrecognised address format
            UpstreamError: the provider failed after retries
        """
        address = (address or "").strip()
        family = detect_chain_family(address)
        if family is None:
            raise ValidationError("Unsupported wallet address format")

        if not force_refresh:
            cached = self.balance_cache.get(address)
            if cached is not None:
                return cached

        provider = self.providers[family]
        payloads = await provider.fetch(address)

        balances: List[TokenBalance] = []
        for payload in payloads:
            balances.extend(normalize_balances(payload))

        logger.info(f"Fetched {len(balances)} balances for {family.value} wallet {address}")
        self.balance_cache.set(address, balances)
        return balances
