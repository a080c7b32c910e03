"""
Tests for the balance, portfolio, price and wallet routes.

Services are replaced through dependency overrides or patches; no upstream
provider, database or Redis is contacted.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from app.api.deps import get_current_user
from app.api.portfolio import get_aggregator, get_balance_service
from app.api.prices import get_price_service
from app.database import get_db
from app.errors import UpstreamError, ValidationError
from app.main import app
from app.schemas.balance import TokenBalance
from app.schemas.portfolio import PortfolioSummary, PortfolioToken
from app.schemas.price import CryptoPrice
from app.schemas.wallet import MultiWalletSettings, Wallet
from app.services.override_resolver import ResolvedOverrides


pytestmark = pytest.mark.unit

USER = "user-1"
WALLET = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


async def _fake_db():
    yield MagicMock()


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[get_db] = _fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def balance_service():
    service = MagicMock()
    service.get_balances = AsyncMock(return_value=[
        TokenBalance(symbol="ETH", name="Ethereum", balance="1.5", decimals=18, price_usd=2000.0,
                     value_usd=3000.0, chain="eth"),
    ])
    app.dependency_overrides[get_balance_service] = lambda: service
    return service


@pytest.fixture
def price_service():
    service = MagicMock()
    app.dependency_overrides[get_price_service] = lambda: service
    return service


class TestBalances:

    def test_returns_normalized_balances(self, client, balance_service):
        response = client.get(f"/api/balances/{WALLET}")

        assert response.status_code == 200
        assert response.json()[0]["symbol"] == "ETH"
        balance_service.get_balances.assert_awaited_once_with(WALLET, force_refresh=False)

    def test_unsupported_address_is_400(self, client, balance_service):
        balance_service.get_balances.side_effect = ValidationError("Unsupported wallet address format")
        response = client.get("/api/balances/nope")

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Unsupported wallet address format"}

    def test_provider_failure_is_502(self, client, balance_service):
        balance_service.get_balances.side_effect = UpstreamError("blockstream returned HTTP 503")
        assert client.get(f"/api/balances/{WALLET}").status_code == 502


class TestPortfolio:

    def _summary(self):
        return PortfolioSummary(
            wallet_address=WALLET,
            tokens=[
                PortfolioToken(symbol="ZRX", name="0x", balance="1", decimals=18),
                PortfolioToken(symbol="AAVE", name="Aave", balance="1", decimals=18),
            ],
            token_count=2,
        )

    def test_cached_snapshot_served(self, client, balance_service):
        with patch("app.api.portfolio.PortfolioSnapshotStore") as store_cls:
            store_cls.return_value.get_cached.return_value = self._summary()
            response = client.get(f"/api/portfolio/{WALLET}", params={"sort": "symbol"})

        assert response.status_code == 200
        assert [t["symbol"] for t in response.json()["tokens"]] == ["AAVE", "ZRX"]
        balance_service.get_balances.assert_not_awaited()

    def test_aggregates_and_saves(self, client, balance_service):
        aggregator = MagicMock()
        aggregator.aggregate = AsyncMock(return_value=self._summary())
        app.dependency_overrides[get_aggregator] = lambda: aggregator
        resolved = ResolvedOverrides(symbol_overrides={"SCAM": None})

        with patch("app.api.portfolio.PortfolioSnapshotStore") as store_cls, \
                patch("app.api.portfolio.OverrideResolver") as resolver_cls:
            store_cls.return_value.get_cached.return_value = None
            store_cls.return_value.save = AsyncMock()
            resolver_cls.return_value.resolve = AsyncMock(return_value=resolved)
            response = client.get(f"/api/portfolio/{WALLET}")

        assert response.status_code == 200
        assert response.json()["token_count"] == 2
        resolver_cls.return_value.resolve.assert_awaited_once_with(USER, WALLET)
        aggregator.aggregate.assert_awaited_once()
        assert aggregator.aggregate.await_args.args[1] is resolved
        store_cls.return_value.save.assert_awaited_once()

    def test_requires_session(self, balance_service):
        app.dependency_overrides[get_db] = _fake_db
        try:
            response = TestClient(app).get(f"/api/portfolio/{WALLET}")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 401


class TestPrices:

    def test_price_map(self, client, price_service):
        price_service.get_prices = AsyncMock(return_value={"bitcoin": 65000.0})
        response = client.get("/api/prices", params={"ids": "bitcoin, Ethereum,bitcoin"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "prices": {"bitcoin": 65000.0}, "missing": ["ethereum"]}
        price_service.get_prices.assert_awaited_once_with(["bitcoin", "ethereum"])

    def test_too_many_ids(self, client, price_service):
        ids = ",".join(f"coin-{i}" for i in range(101))
        response = client.get("/api/prices", params={"ids": ids})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_empty_ids(self, client, price_service):
        assert client.get("/api/prices", params={"ids": " , "}).status_code == 400

    def test_symbol_price(self, client, price_service):
        price_service.get_symbol_price = AsyncMock(
            return_value=CryptoPrice(symbol="BTC", coin_id="bitcoin", price_usd=65000.0, source="coingecko")
        )
        response = client.get("/api/prices/symbol/btc")

        assert response.status_code == 200
        assert response.json()["price_usd"] == 65000.0

    def test_symbol_price_not_found(self, client, price_service):
        price_service.get_symbol_price = AsyncMock(return_value=None)
        response = client.get("/api/prices/symbol/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "No price found for NOPE"}

    def test_coin_list_failure(self, client, price_service):
        price_service.get_coin_list = AsyncMock(
            side_effect=UpstreamError("Failed to fetch coinlist", status_code=500)
        )
        response = client.get("/api/coinlist")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch coinlist"


class TestWallets:

    def test_get_wallets(self, client):
        settings = MultiWalletSettings(wallets=[Wallet(id="w1", address=WALLET, label="Main")])
        with patch("app.api.wallets.WalletSettingsService") as service_cls:
            service_cls.return_value.get_wallets = AsyncMock(return_value=settings)
            response = client.get("/api/wallets")

        assert response.status_code == 200
        wallet = response.json()["wallets"][0]
        assert wallet["address"] == WALLET
        assert "symbolOverrides" in wallet

    def test_save_rejects_unknown_address(self, client):
        with patch("app.api.wallets.WalletSettingsService") as service_cls:
            response = client.put("/api/wallets", json={"wallets": [{"id": "w1", "address": "nope"}]})

        assert response.status_code == 400
        service_cls.assert_not_called()

    def test_save_rejects_duplicates(self, client):
        body = {"wallets": [{"id": "w1", "address": WALLET}, {"id": "w2", "address": WALLET}]}
        response = client.put("/api/wallets", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == f"Duplicate wallet address: {WALLET}"

    def test_save_wallets(self, client):
        with patch("app.api.wallets.WalletSettingsService") as service_cls:
            service_cls.return_value.save_wallets = AsyncMock(side_effect=lambda user_id, wallets: wallets)
            response = client.put("/api/wallets", json={"wallets": [
                {"id": "w1", "address": WALLET, "symbolOverrides": {"SCAM": None}},
            ]})

        assert response.status_code == 200
        assert response.json()["wallets"][0]["symbolOverrides"] == {"SCAM": None}


class TestHealth:

    @pytest.fixture(autouse=True)
    def fresh_health_cache(self):
        from app import main
        main._health_cache.clear()
        yield
        main._health_cache.clear()

    def test_healthy_and_cached(self):
        status = AsyncMock(return_value={"database": "connected", "migration_revision": "001"})
        with patch("app.main._database_status", status):
            client = TestClient(app)
            first = client.get("/api/health").json()
            second = client.get("/api/health").json()

        assert first["status"] == "healthy"
        assert first["migration_revision"] == "001"
        assert first["cached"] is False
        assert second["cached"] is True
        status.assert_awaited_once()

    def test_database_down_is_degraded(self):
        status = AsyncMock(return_value={"database": "connection_failed", "database_error": "refused"})
        with patch("app.main._database_status", status):
            response = TestClient(app).get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
