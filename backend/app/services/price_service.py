"""
Price service.

USD prices from CoinGecko, with Coinbase as a fallback for single-symbol
lookups:
- ``simple/price`` for CoinGecko ids, in batches of at most 100 ids
- ``simple/token_price/{platform}`` for EVM contract addresses
- ``coins/list?include_platform=true`` for symbol -> id resolution, cached
  in Redis for 24 hours with a stale copy kept for outages

Quotes are cached in a process-local TTL cache (5 minutes by default).
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from app.config import settings
from app.errors import UpstreamError, ValidationError
from app.schemas.price import CryptoPrice, SYMBOL_PATTERN
from app.services.cache import cache as default_cache, CacheService
from app.services.http_client import fetch_json
from app.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# Chain identifier -> CoinGecko asset platform
COINGECKO_PLATFORMS = {
    "eth": "ethereum",
    "bsc": "binance-smart-chain",
    "polygon": "polygon-pos",
    "avalanche": "avalanche",
    "fantom": "fantom",
    "cronos": "cronos",
    "arbitrum": "arbitrum-one",
    "optimism": "optimistic-ethereum",
    "base": "base",
}

# Native asset symbol -> CoinGecko id
NATIVE_COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "ATOM": "cosmos",
    "BNB": "binancecoin",
    "POL": "polygon-ecosystem-token",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "FTM": "fantom",
    "CRO": "crypto-com-chain",
}

COIN_LIST_CACHE_KEY = "coingecko:coin_list"
COIN_LIST_STALE_KEY = "coingecko:coin_list:stale"
COIN_LIST_STALE_TTL = 86400 * 30

# Shared across PriceService instances
_quote_cache = TTLCache(ttl_seconds=settings.price_cache_ttl, name="price_cache")


def chunked(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class PriceService:
    """Fetch USD prices from CoinGecko and Coinbase."""

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        quote_cache: Optional[TTLCache] = None
    ):
        self.cache = cache if cache is not None else default_cache
        self.quote_cache = quote_cache if quote_cache is not None else _quote_cache
        self.batch_limit = settings.price_batch_limit

    def _coingecko_headers(self) -> Dict[str, str]:
        if settings.coingecko_api_key:
            return {"x-cg-demo-api-key": settings.coingecko_api_key}
        return {}

    async def _coingecko(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await fetch_json(
            f"{settings.coingecko_api_url}{path}",
            provider="coingecko",
            params=params,
            headers=self._coingecko_headers()
        )

    async def get_prices(self, coin_ids: Iterable[str]) -> Dict[str, float]:
        """
        Get USD prices for CoinGecko ids.

        Ids missing upstream are absent from the result. A failing batch is
        logged and skipped so the other batches still price.

        Returns:
            Dict mapping coin id to USD price
        """
        ids = list(dict.fromkeys(i.strip().lower() for i in coin_ids if i and i.strip()))
        prices: Dict[str, float] = {}
        to_fetch: List[str] = []

        for coin_id in ids:
            cached = self.quote_cache.get(("id", coin_id))
            if cached is not None:
                prices[coin_id] = cached
            else:
                to_fetch.append(coin_id)

        for batch in chunked(to_fetch, self.batch_limit):
            try:
                data = await self._coingecko("/simple/price", {
                    "ids": ",".join(batch),
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                })
            except UpstreamError as e:
                logger.warning(f"CoinGecko price batch of {len(batch)} ids failed: {e.message}")
                continue

            for coin_id, quote in (data or {}).items():
                usd = (quote or {}).get("usd")
                if usd is None:
                    continue
                prices[coin_id] = float(usd)
                self.quote_cache.set(("id", coin_id), float(usd))

        missing = [i for i in ids if i not in prices]
        if missing:
            logger.debug(f"No CoinGecko price for {len(missing)} ids: {missing[:10]}")
        return prices

    async def get_token_prices(self, chain: str, contract_addresses: Iterable[str]) -> Dict[str, float]:
        """
        Get USD prices for EVM contracts on one chain.

        Returns:
            Dict mapping lower-cased contract address to USD price; empty for
            chains CoinGecko has no platform for
        """
        platform = COINGECKO_PLATFORMS.get((chain or "").lower())
        if not platform:
            logger.debug(f"No CoinGecko platform for chain {chain}")
            return {}

        addresses = list(dict.fromkeys(a.lower() for a in contract_addresses if a))
        prices: Dict[str, float] = {}
        to_fetch: List[str] = []

        for address in addresses:
            cached = self.quote_cache.get(("token", platform, address))
            if cached is not None:
                prices[address] = cached
            else:
                to_fetch.append(address)

        for batch in chunked(to_fetch, self.batch_limit):
            try:
                data = await self._coingecko(f"/simple/token_price/{platform}", {
                    "contract_addresses": ",".join(batch),
                    "vs_currencies": "usd",
                })
            except UpstreamError as e:
                logger.warning(f"CoinGecko token price batch on {platform} failed: {e.message}")
                continue

            for address, quote in (data or {}).items():
                usd = (quote or {}).get("usd")
                if usd is None:
                    continue
                prices[address.lower()] = float(usd)
                self.quote_cache.set(("token", platform, address.lower()), float(usd))

        return prices

    async def get_coin_list(self) -> List[Dict[str, Any]]:
        """
        Get the CoinGecko coin list (with platforms).

        Served from Redis while fresh; refetched otherwise. When CoinGecko
        fails the last stored copy is returned.

        Raises:
            UpstreamError: CoinGecko failed and no copy is stored
        """
        cached = self.cache.get(COIN_LIST_CACHE_KEY)
        if cached:
            return cached
        return await self.refresh_coin_list()

    async def refresh_coin_list(self) -> List[Dict[str, Any]]:
        try:
            coins = await self._coingecko("/coins/list", {"include_platform": "true"})
        except UpstreamError:
            stale = self.cache.get(COIN_LIST_STALE_KEY)
            if stale:
                logger.warning("CoinGecko coin list unavailable, serving stale copy")
                return stale
            raise UpstreamError("Failed to fetch coinlist", status_code=500, provider="coingecko")

        self.cache.set(COIN_LIST_CACHE_KEY, coins, settings.coin_list_cache_ttl)
        self.cache.set(COIN_LIST_STALE_KEY, coins, COIN_LIST_STALE_TTL)
        logger.info(f"Refreshed CoinGecko coin list ({len(coins)} coins)")
        return coins

    async def get_symbol_ids(self) -> Dict[str, str]:
        """
        Map upper-cased symbols to CoinGecko ids.

        Native assets use their well-known ids; for other symbols the first
        coin-list entry wins. An unavailable coin list yields the native map only.
        """
        cached = self.quote_cache.get(("symbol_ids",))
        if cached is not None:
            return cached

        symbol_ids: Dict[str, str] = {}
        try:
            coins = await self.get_coin_list()
        except UpstreamError as e:
            logger.warning(f"Coin list unavailable for symbol resolution: {e.message}")
            return dict(NATIVE_COINGECKO_IDS)

        for coin in coins:
            symbol = (coin.get("symbol") or "").upper()
            if symbol and symbol not in symbol_ids:
                symbol_ids[symbol] = coin.get("id")
        symbol_ids.update(NATIVE_COINGECKO_IDS)
        self.quote_cache.set(("symbol_ids",), symbol_ids)
        return symbol_ids

    async def _coinbase_price(self, symbol: str) -> Optional[float]:
        try:
            data = await fetch_json(
                f"{settings.coinbase_api_url}/v2/exchange-rates",
                provider="coinbase",
                params={"currency": symbol}
            )
        except UpstreamError as e:
            logger.warning(f"Coinbase price lookup for {symbol} failed: {e.message}")
            return None

        usd_rate = ((data or {}).get("data") or {}).get("rates", {}).get("USD")
        if not usd_rate:
            return None
        try:
            return float(usd_rate)
        except (TypeError, ValueError):
            logger.warning(f"Coinbase returned a non-numeric USD rate for {symbol}: {usd_rate!r}")
            return None

    async def get_symbol_price(self, symbol: str) -> Optional[CryptoPrice]:
        """
        Price a single symbol: CoinGecko first, then Coinbase.

        Returns:
            CryptoPrice, or None when neither provider knows the symbol

        Raises:
            ValidationError: malformed symbol
        """
        if not symbol or not SYMBOL_PATTERN.match(symbol.strip()):
            raise ValidationError("Invalid asset symbol")
        symbol = symbol.strip().upper()

        cached = self.quote_cache.get(("symbol", symbol))
        if cached is not None:
            return CryptoPrice(**cached)

        coin_id = NATIVE_COINGECKO_IDS.get(symbol)
        if coin_id is None:
            coin_id = (await self.get_symbol_ids()).get(symbol)

        price: Optional[CryptoPrice] = None
        if coin_id:
            quotes = await self.get_prices([coin_id])
            if coin_id in quotes:
                price = CryptoPrice(symbol=symbol, coin_id=coin_id, price_usd=quotes[coin_id], source="coingecko")

        if price is None:
            usd = await self._coinbase_price(symbol)
            if usd is not None:
                price = CryptoPrice(symbol=symbol, coin_id=coin_id, price_usd=usd, source="coinbase")

        if price is None:
            logger.info(f"No price found for {symbol} from any source")
            return None

        self.quote_cache.set(("symbol", symbol), price.model_dump())
        return price
