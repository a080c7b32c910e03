"""Wallet settings schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class Wallet(BaseModel):
    """A tracked wallet as stored in the multi-wallet settings blob."""
    id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=128)
    label: str = ""
    chain: Optional[str] = None
    expanded: bool = False
    symbol_overrides: Dict[str, Optional[str]] = Field(default_factory=dict, alias="symbolOverrides")
    address_overrides: Dict[str, Optional[str]] = Field(default_factory=dict, alias="addressOverrides")

    model_config = {"populate_by_name": True}


class MultiWalletSettings(BaseModel):
    wallets: List[Wallet] = Field(default_factory=list)


class GlobalOverrideSettings(BaseModel):
    address_overrides: Dict[str, Optional[str]] = Field(default_factory=dict, alias="addressOverrides")
    symbol_overrides: Dict[str, Optional[str]] = Field(default_factory=dict, alias="symbolOverrides")

    model_config = {"populate_by_name": True}
