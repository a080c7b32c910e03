"""
Portfolio aggregation service - priced view of one wallet.

Applies resolved overrides to normalized balances, fetches the prices they
call for and computes USD values and totals.

Price selection per token, first match wins:
1. Address override, then symbol override. A non-null value is the
   CoinGecko id to price with; a null value excludes the token from pricing
   (balance still shown, value 0, not counted in the total).
2. EVM contract token on a chain CoinGecko knows: contract price lookup.
3. Native asset (no contract address): well-known CoinGecko id.
4. Token the provider did not price: coin-list id for its symbol.
5. Otherwise the provider's own price.

Whenever the chosen lookup returns nothing the provider's price is kept.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from app.schemas.balance import TokenBalance
from app.schemas.portfolio import PortfolioSummary, PortfolioToken, PriceSource
from app.services.balance_normalizer import to_decimal
from app.services.override_resolver import ResolvedOverrides
from app.services.price_service import PriceService, COINGECKO_PLATFORMS, NATIVE_COINGECKO_IDS
from app.utils.address_validation import is_evm_address

logger = logging.getLogger(__name__)


@dataclass
class PricePlanEntry:
    """How one balance gets its price."""
    source: PriceSource
    price_id: Optional[str] = None
    chain: Optional[str] = None


@dataclass
class PricePlan:
    """Price plan for a list of balances (entries parallel to the balances)."""
    entries: List[PricePlanEntry] = field(default_factory=list)

    def coin_ids(self) -> List[str]:
        """CoinGecko ids to fetch, without duplicates, in first-seen order."""
        ids = [
            entry.price_id for entry in self.entries
            if entry.source in (PriceSource.OVERRIDE, PriceSource.NATIVE, PriceSource.SYMBOL) and entry.price_id
        ]
        return list(dict.fromkeys(ids))

    def contracts_by_chain(self) -> Dict[str, List[str]]:
        contracts: Dict[str, List[str]] = {}
        for entry in self.entries:
            if entry.source == PriceSource.CONTRACT and entry.price_id:
                chain_contracts = contracts.setdefault(entry.chain, [])
                if entry.price_id not in chain_contracts:
                    chain_contracts.append(entry.price_id)
        return contracts

    @property
    def excluded_count(self) -> int:
        return sum(1 for entry in self.entries if entry.source == PriceSource.EXCLUDED)


@dataclass
class PriceQuotes:
    """Fetched prices: by CoinGecko id and by (chain, lower-cased contract)."""
    by_id: Dict[str, float] = field(default_factory=dict)
    by_contract: Dict[Tuple[str, str], float] = field(default_factory=dict)


def _plan_entry(
    balance: TokenBalance,
    overrides: ResolvedOverrides,
    symbol_ids: Optional[Dict[str, str]]
) -> PricePlanEntry:
    present, value = overrides.lookup_address(balance.token_address)
    if not present:
        present, value = overrides.lookup_symbol(balance.symbol)
    if present:
        if value is None:
            return PricePlanEntry(PriceSource.EXCLUDED)
        return PricePlanEntry(PriceSource.OVERRIDE, price_id=value.strip().lower())

    chain = (balance.chain or "").lower()
    if balance.token_address and chain in COINGECKO_PLATFORMS and is_evm_address(balance.token_address):
        return PricePlanEntry(PriceSource.CONTRACT, price_id=balance.token_address.lower(), chain=chain)

    symbol = (balance.symbol or "").upper()
    if not balance.token_address and symbol in NATIVE_COINGECKO_IDS:
        return PricePlanEntry(PriceSource.NATIVE, price_id=NATIVE_COINGECKO_IDS[symbol])

    if not balance.price_usd and symbol_ids and symbol in symbol_ids:
        return PricePlanEntry(PriceSource.SYMBOL, price_id=symbol_ids[symbol])

    return PricePlanEntry(PriceSource.PROVIDER)


def plan_prices(
    balances: List[TokenBalance],
    overrides: ResolvedOverrides,
    symbol_ids: Optional[Dict[str, str]] = None
) -> PricePlan:
    """
    Decide how each balance is priced.

    Args:
        balances: Normalized balances
        overrides: Resolved override maps for the wallet
        symbol_ids: Optional upper-cased symbol -> CoinGecko id map

    Returns:
        PricePlan with one entry per balance
    """
    return PricePlan(entries=[_plan_entry(b, overrides, symbol_ids) for b in balances])


def _quote_for(entry: PricePlanEntry, quotes: PriceQuotes) -> Optional[float]:
    if entry.source == PriceSource.CONTRACT:
        return quotes.by_contract.get((entry.chain, entry.price_id))
    if entry.price_id:
        return quotes.by_id.get(entry.price_id)
    return None


def summarize_portfolio(
    balances: List[TokenBalance],
    plan: PricePlan,
    quotes: PriceQuotes,
    wallet_address: Optional[str] = None,
    sort_by_symbol: bool = False
) -> PortfolioSummary:
    """
    Merge prices into balances and total them up.

    ``value_usd`` is ``float(balance) * price_usd``; the total sums the
    tokens that are not excluded. Output keeps provider order unless
    ``sort_by_symbol`` is set.
    """
    tokens: List[PortfolioToken] = []
    total = 0.0
    value_by_chain: Dict[str, float] = {}

    for balance, entry in zip(balances, plan.entries):
        source = entry.source
        price_usd = balance.price_usd or 0.0
        excluded = source == PriceSource.EXCLUDED

        if excluded:
            price_usd = 0.0
        elif source != PriceSource.PROVIDER:
            quote = _quote_for(entry, quotes)
            if quote is None:
                logger.debug(f"No {source.value} quote for {balance.symbol}, keeping provider price")
                source = PriceSource.PROVIDER
            else:
                price_usd = quote

        amount: Decimal = to_decimal(balance.balance)
        value_usd = 0.0 if excluded else float(amount) * price_usd

        tokens.append(PortfolioToken(
            token_address=balance.token_address,
            symbol=balance.symbol,
            name=balance.name,
            balance=balance.balance,
            decimals=balance.decimals,
            price_usd=price_usd,
            value_usd=value_usd,
            logo_url=balance.logo_url,
            chain=balance.chain,
            price_id=entry.price_id,
            price_source=source,
            excluded=excluded,
        ))

        if not excluded:
            total += value_usd
            chain_key = balance.chain or "unknown"
            value_by_chain[chain_key] = value_by_chain.get(chain_key, 0.0) + value_usd

    if sort_by_symbol:
        tokens.sort(key=lambda token: token.symbol.upper())

    return PortfolioSummary(
        wallet_address=wallet_address,
        tokens=tokens,
        total_value_usd=total,
        token_count=len(tokens),
        excluded_count=plan.excluded_count,
        value_by_chain=value_by_chain,
    )


class PortfolioAggregator:
    """Price a wallet's balances with its overrides applied."""

    def __init__(self, price_service: Optional[PriceService] = None):
        self.price_service = price_service or PriceService()

    async def fetch_quotes(self, plan: PricePlan) -> PriceQuotes:
        quotes = PriceQuotes()

        coin_ids = plan.coin_ids()
        if coin_ids:
            quotes.by_id = await self.price_service.get_prices(coin_ids)

        for chain, contracts in plan.contracts_by_chain().items():
            prices = await self.price_service.get_token_prices(chain, contracts)
            for address, price in prices.items():
                quotes.by_contract[(chain, address.lower())] = price

        return quotes

    async def aggregate(
        self,
        balances: List[TokenBalance],
        overrides: ResolvedOverrides,
        wallet_address: Optional[str] = None,
        sort_by_symbol: bool = False
    ) -> PortfolioSummary:
        """
        Apply overrides, fetch prices and build the wallet summary.

        Price failures never fail the aggregation; affected tokens keep
        their provider price.
        """
        symbol_ids = None
        if any(not b.price_usd for b in balances):
            symbol_ids = await self.price_service.get_symbol_ids()

        plan = plan_prices(balances, overrides, symbol_ids)
        quotes = await self.fetch_quotes(plan)
        summary = summarize_portfolio(balances, plan, quotes, wallet_address, sort_by_symbol)

        logger.info(
            f"Aggregated {summary.token_count} tokens for {wallet_address or 'wallet'}: "
            f"${summary.total_value_usd:,.2f} ({summary.excluded_count} excluded)"
        )
        return summary
