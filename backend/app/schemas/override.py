"""Token override schemas."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any

from app.models.token_override import OverrideType, OverrideAction


OverrideMap = Dict[str, Optional[str]]


class OverrideMutationRequest(BaseModel):
    """
    Body of ``POST /api/overrides``.

    Field values are checked by the override service rather than by pydantic
    so that a bad ``action`` or ``overrideType`` is answered with a 400 and a
    readable message.
    """
    contract_address: Optional[str] = Field(None, alias="contractAddress", description="Token contract address")
    chain: str = Field("eth", description="Chain identifier")
    override_type: Optional[str] = Field(None, alias="overrideType", description="symbol or address")
    override_value: Optional[str] = Field(
        None,
        alias="overrideValue",
        description="CoinGecko id; null excludes the token from price lookup"
    )
    wallet_address: Optional[str] = Field(None, alias="walletAddress", description="Wallet scope; omit for global")
    wallet_id: Optional[str] = Field(None, alias="walletId")
    symbol: Optional[str] = Field(None, description="Token symbol (symbol overrides)")
    action: str = Field("upsert", description="upsert, delete or bulk_delete")

    model_config = {"populate_by_name": True}


class TokenOverrideResponse(BaseModel):
    """A stored override row."""
    id: int
    user_id: str
    contract_address: str
    symbol: Optional[str] = None
    chain: str
    override_type: OverrideType
    override_value: Optional[str] = None
    wallet_address: Optional[str] = None
    wallet_id: Optional[str] = None
    is_active: bool
    action: OverrideAction
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OverrideMutationResult(BaseModel):
    """Result of an override mutation."""
    success: bool = True
    action: str
    data: Optional[TokenOverrideResponse] = None
    wallet_address: Optional[str] = Field(None, alias="walletAddress")
    message: Optional[str] = None
    affected: Optional[int] = None

    model_config = {"populate_by_name": True}


class OverrideMaps(BaseModel):
    """Symbol and address override maps."""
    address_overrides: OverrideMap = Field(default_factory=dict, alias="addressOverrides")
    symbol_overrides: OverrideMap = Field(default_factory=dict, alias="symbolOverrides")

    model_config = {"populate_by_name": True}


class WalletOverridesResponse(BaseModel):
    """``GET /api/overrides?wallet_address=...``: merged maps for one wallet."""
    success: bool = True
    address_overrides: OverrideMap = Field(default_factory=dict, alias="addressOverrides")
    symbol_overrides: OverrideMap = Field(default_factory=dict, alias="symbolOverrides")
    wallet_specific: OverrideMap = Field(default_factory=dict, alias="walletSpecific")
    global_overrides: OverrideMap = Field(default_factory=dict, alias="global")
    wallet_address: str = Field(..., alias="walletAddress")

    model_config = {"populate_by_name": True}


class GroupedOverridesResponse(BaseModel):
    """``GET /api/overrides`` without a wallet: every wallet's maps plus the global ones."""
    success: bool = True
    wallet_groups: Dict[str, OverrideMaps] = Field(default_factory=dict, alias="walletGroups")
    global_overrides: OverrideMaps = Field(default_factory=OverrideMaps, alias="global")
    # Legacy top-level maps, equal to the global ones
    address_overrides: OverrideMap = Field(default_factory=dict, alias="addressOverrides")
    symbol_overrides: OverrideMap = Field(default_factory=dict, alias="symbolOverrides")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[Dict[str, Any]] = None
