"""
Balance schemas.

``TokenBalance`` is the common shape every wallet is normalized into.
``ProviderBalances`` is a tagged union over the raw provider payloads,
discriminated by ``kind``.
"""
from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Literal, Union


class TokenBalance(BaseModel):
    """Normalized token balance."""
    token_address: str = Field("", description="Contract / mint address; empty for native assets")
    symbol: str
    name: str
    balance: str = Field(..., description="Balance in whole units as a decimal string")
    decimals: int = Field(..., ge=0)
    price_usd: float = 0.0
    value_usd: float = 0.0
    logo_url: Optional[str] = None
    chain: Optional[str] = Field(None, description="Chain identifier (eth, solana, bitcoin, cosmos, ...)")


# Provider payloads

class EvmToken(BaseModel):
    """One entry of a Moralis ``wallets/{address}/tokens`` result."""
    token_address: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    logo: Optional[str] = None
    thumbnail: Optional[str] = None
    decimals: int = 18
    balance: str = Field("0", description="Raw integer balance in the smallest unit")
    balance_formatted: Optional[str] = None
    usd_price: Optional[float] = None
    usd_value: Optional[float] = None
    native_token: bool = False
    possible_spam: bool = False


class EvmTokenBalances(BaseModel):
    kind: Literal["evm"] = "evm"
    chain: str = "eth"
    tokens: List[EvmToken] = Field(default_factory=list)


class SolanaTokenAccount(BaseModel):
    """Parsed SPL token account (``getTokenAccountsByOwner`` jsonParsed)."""
    mint: str
    amount: str = "0"
    decimals: int = 0
    ui_amount_string: Optional[str] = None
    symbol: Optional[str] = None
    name: Optional[str] = None


class SolanaBalances(BaseModel):
    kind: Literal["solana"] = "solana"
    lamports: int = 0
    tokens: List[SolanaTokenAccount] = Field(default_factory=list)


class BitcoinBalance(BaseModel):
    kind: Literal["bitcoin"] = "bitcoin"
    address: str
    satoshis: int = 0


class CosmosCoin(BaseModel):
    denom: str
    amount: str = "0"


class CosmosBalances(BaseModel):
    kind: Literal["cosmos"] = "cosmos"
    balances: List[CosmosCoin] = Field(default_factory=list)


ProviderBalances = Annotated[
    Union[EvmTokenBalances, SolanaBalances, BitcoinBalance, CosmosBalances],
    Field(discriminator="kind"),
]

PROVIDER_BALANCE_TYPES = (EvmTokenBalances, SolanaBalances, BitcoinBalance, CosmosBalances)
