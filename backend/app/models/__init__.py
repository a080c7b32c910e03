"""
Models package - Import all database models for easy access.
"""
from app.models.token_override import (
    TokenOverride,
    OverrideType,
    OverrideAction,
    GLOBAL_SCOPE,
)
from app.models.wallet_settings import WalletSettings, SettingsType
from app.models.token_holding import TokenHolding
from app.models.user_session import UserSession

__all__ = [
    "TokenOverride",
    "OverrideType",
    "OverrideAction",
    "GLOBAL_SCOPE",
    "WalletSettings",
    "SettingsType",
    "TokenHolding",
    "UserSession",
]
