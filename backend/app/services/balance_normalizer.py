"""
Balance normalizer.

Maps provider-specific balance payloads (EVM, Solana, Bitcoin, Cosmos) onto
the common ``TokenBalance`` shape. Pure mapping, no I/O.

Balances are computed with Decimal and emitted as decimal strings; USD
values stay floating point (``value_usd = float(balance) * price_usd``).
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Type, get_args

from app.schemas.balance import (
    TokenBalance,
    ProviderBalances,
    EvmTokenBalances,
    SolanaBalances,
    BitcoinBalance,
    CosmosBalances,
    PROVIDER_BALANCE_TYPES,
)

logger = logging.getLogger(__name__)

LAMPORTS_DECIMALS = 9
SATOSHI_DECIMALS = 8
COSMOS_MICRO_DECIMALS = 6

# Native asset metadata per EVM chain (Moralis reports natives without a symbol on some chains)
EVM_NATIVE_ASSETS = {
    "eth": ("ETH", "Ethereum"),
    "bsc": ("BNB", "BNB"),
    "polygon": ("POL", "Polygon"),
    "avalanche": ("AVAX", "Avalanche"),
    "fantom": ("FTM", "Fantom"),
    "cronos": ("CRO", "Cronos"),
    "arbitrum": ("ETH", "Ethereum"),
    "optimism": ("ETH", "Ethereum"),
    "base": ("ETH", "Ethereum"),
}


def to_decimal(value) -> Decimal:
    """Parse a provider number (int, float or string) into a Decimal; junk becomes zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.debug(f"Unparseable balance value {value!r}, treating as zero")
        return Decimal("0")
    if not parsed.is_finite():
        logger.debug(f"Non-finite balance value {value!r}, treating as zero")
        return Decimal("0")
    return parsed


def scale_units(raw, decimals: int) -> Decimal:
    """Convert an integer amount in the smallest unit into whole units."""
    return to_decimal(raw).scaleb(-decimals)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent notation or trailing zeros."""
    if value == 0:
        return "0"
    text = format(value.normalize(), "f")
    return text


def _value(balance: Decimal, price_usd: float) -> float:
    return float(balance) * price_usd


def _normalize_evm(payload: EvmTokenBalances) -> List[TokenBalance]:
    balances: List[TokenBalance] = []
    for token in payload.tokens:
        if token.possible_spam:
            logger.debug(f"Dropping spam token {token.symbol} ({token.token_address}) on {payload.chain}")
            continue

        if token.balance_formatted not in (None, ""):
            amount = to_decimal(token.balance_formatted)
        else:
            amount = scale_units(token.balance, token.decimals)
        if amount <= 0:
            continue

        symbol, name = token.symbol, token.name
        if token.native_token:
            native_symbol, native_name = EVM_NATIVE_ASSETS.get(payload.chain, (None, None))
            symbol = symbol or native_symbol
            name = name or native_name

        price_usd = float(token.usd_price or 0.0)
        balances.append(TokenBalance(
            token_address="" if token.native_token else token.token_address,
            symbol=symbol or "UNKNOWN",
            name=name or symbol or "Unknown Token",
            balance=format_decimal(amount),
            decimals=token.decimals,
            price_usd=price_usd,
            value_usd=_value(amount, price_usd),
            logo_url=token.logo or token.thumbnail,
            chain=payload.chain,
        ))
    return balances


def _normalize_solana(payload: SolanaBalances) -> List[TokenBalance]:
    balances: List[TokenBalance] = []

    sol = scale_units(payload.lamports, LAMPORTS_DECIMALS)
    if sol > 0:
        balances.append(TokenBalance(
            token_address="",
            symbol="SOL",
            name="Solana",
            balance=format_decimal(sol),
            decimals=LAMPORTS_DECIMALS,
            chain="solana",
        ))

    for account in payload.tokens:
        if account.ui_amount_string not in (None, ""):
            amount = to_decimal(account.ui_amount_string)
        else:
            amount = scale_units(account.amount, account.decimals)
        if amount <= 0:
            continue
        balances.append(TokenBalance(
            token_address=account.mint,
            symbol=account.symbol or account.mint[:6].upper(),
            name=account.name or "SPL Token",
            balance=format_decimal(amount),
            decimals=account.decimals,
            chain="solana",
        ))
    return balances


def _normalize_bitcoin(payload: BitcoinBalance) -> List[TokenBalance]:
    amount = scale_units(payload.satoshis, SATOSHI_DECIMALS)
    return [TokenBalance(
        token_address="",
        symbol="BTC",
        name="Bitcoin",
        balance=format_decimal(amount),
        decimals=SATOSHI_DECIMALS,
        chain="bitcoin",
    )]


def _cosmos_symbol(denom: str) -> Optional[str]:
    """``uatom`` -> ``ATOM``; other ``u``-prefixed native denoms likewise. IBC denoms have no symbol."""
    if denom.startswith("u") and "/" not in denom and len(denom) > 1:
        return denom[1:].upper()
    return None


def _normalize_cosmos(payload: CosmosBalances) -> List[TokenBalance]:
    balances: List[TokenBalance] = []
    for coin in payload.balances:
        symbol = _cosmos_symbol(coin.denom)
        if symbol:
            amount = scale_units(coin.amount, COSMOS_MICRO_DECIMALS)
            decimals = COSMOS_MICRO_DECIMALS
            name = "Cosmos Hub" if symbol == "ATOM" else symbol
        else:
            amount = to_decimal(coin.amount)
            decimals = 0
            symbol = coin.denom
            name = coin.denom
        if amount <= 0:
            continue
        balances.append(TokenBalance(
            token_address="" if decimals else coin.denom,
            symbol=symbol,
            name=name,
            balance=format_decimal(amount),
            decimals=decimals,
            chain="cosmos",
        ))
    return balances


NORMALIZERS: Dict[Type, Callable[..., List[TokenBalance]]] = {
    EvmTokenBalances: _normalize_evm,
    SolanaBalances: _normalize_solana,
    BitcoinBalance: _normalize_bitcoin,
    CosmosBalances: _normalize_cosmos,
}


def check_normalizer_coverage(variants, normalizers) -> None:
    """Raise RuntimeError unless every payload variant has exactly one normalizer."""
    if set(variants) != set(normalizers):
        raise RuntimeError("balance normalizer table out of sync with ProviderBalances")


check_normalizer_coverage(get_args(get_args(ProviderBalances)[0]), NORMALIZERS)
check_normalizer_coverage(PROVIDER_BALANCE_TYPES, NORMALIZERS)


def normalize_balances(payload: ProviderBalances) -> List[TokenBalance]:
    """
    Normalize a provider payload into TokenBalance entries.

    Zero balances are dropped; provider order is preserved.

    Raises:
        TypeError: for an object that is not a known payload variant
    """
    normalizer = NORMALIZERS.get(type(payload))
    if normalizer is None:
        raise TypeError(f"Unsupported balance payload: {type(payload).__name__}")
    return normalizer(payload)


def with_price(balance: TokenBalance, price_usd: float) -> TokenBalance:
    """Return a copy of a balance priced at ``price_usd``."""
    return balance.model_copy(update={
        "price_usd": price_usd,
        "value_usd": _value(to_decimal(balance.balance), price_usd),
    })
