"""API router package."""
from app.api.overrides import router as overrides_router
from app.api.portfolio import router as portfolio_router
from app.api.prices import router as prices_router
from app.api.wallets import router as wallets_router

__all__ = [
    "overrides_router",
    "portfolio_router",
    "prices_router",
    "wallets_router",
]
