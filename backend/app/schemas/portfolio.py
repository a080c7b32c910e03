"""Portfolio schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from enum import Enum


class PriceSource(str, Enum):
    """Where a token's USD price came from."""
    OVERRIDE = "override"
    CONTRACT = "contract"
    NATIVE = "native"
    SYMBOL = "symbol"
    PROVIDER = "provider"
    EXCLUDED = "excluded"


class PortfolioToken(BaseModel):
    """A normalized balance with its final price and value."""
    token_address: str = ""
    symbol: str
    name: str
    balance: str
    decimals: int
    price_usd: float = 0.0
    value_usd: float = 0.0
    logo_url: Optional[str] = None
    chain: Optional[str] = None
    price_id: Optional[str] = Field(None, description="CoinGecko id or contract used for the price")
    price_source: PriceSource = PriceSource.PROVIDER
    excluded: bool = Field(False, description="True when an override removed the token from pricing")


class PortfolioSummary(BaseModel):
    """Aggregated portfolio for one wallet."""
    wallet_address: Optional[str] = None
    tokens: List[PortfolioToken] = Field(default_factory=list)
    total_value_usd: float = 0.0
    token_count: int = 0
    excluded_count: int = 0
    value_by_chain: Dict[str, float] = Field(default_factory=dict)
