"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.balance import TokenBalance, ProviderBalances
from app.schemas.override import (
    OverrideMutationRequest,
    OverrideMutationResult,
    WalletOverridesResponse,
    GroupedOverridesResponse,
)
from app.schemas.portfolio import PortfolioSummary, PortfolioToken, PriceSource
from app.schemas.wallet import Wallet, MultiWalletSettings, GlobalOverrideSettings

__all__ = [
    "TokenBalance",
    "ProviderBalances",
    "OverrideMutationRequest",
    "OverrideMutationResult",
    "WalletOverridesResponse",
    "GroupedOverridesResponse",
    "PortfolioSummary",
    "PortfolioToken",
    "PriceSource",
    "Wallet",
    "MultiWalletSettings",
    "GlobalOverrideSettings",
]
