"""Price schemas."""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Dict
import re


SYMBOL_PATTERN = re.compile(r'^[A-Za-z0-9\-\.]{1,20}$')


class CryptoPrice(BaseModel):
    """USD price of one asset."""
    symbol: str = Field(..., description="Asset symbol (e.g., BTC)")
    coin_id: Optional[str] = Field(None, description="CoinGecko id when known")
    price_usd: float = Field(..., ge=0)
    price_change_24h: float = 0.0
    source: str = Field(..., description="coingecko or coinbase")
    last_updated: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        v = v.upper().strip()
        if not SYMBOL_PATTERN.match(v):
            raise ValueError("Symbol contains invalid characters")
        return v


class CoinListEntry(BaseModel):
    """Entry of CoinGecko's ``coins/list?include_platform=true``."""
    id: str
    symbol: str
    name: str
    platforms: Dict[str, Optional[str]] = Field(default_factory=dict)


class PriceMapResponse(BaseModel):
    """``GET /api/prices``: CoinGecko id -> USD price."""
    success: bool = True
    prices: Dict[str, float] = Field(default_factory=dict)
    missing: List[str] = Field(default_factory=list)
