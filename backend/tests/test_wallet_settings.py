"""
Tests for wallet settings persistence.
"""
import pytest
from sqlalchemy import select, text

from app.models import WalletSettings, SettingsType
from app.schemas.wallet import GlobalOverrideSettings, MultiWalletSettings, Wallet
from app.services.wallet_settings import WalletSettingsService


pytestmark = pytest.mark.unit

USER = "user-1"
WALLET = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


class TestWalletSettingsService:

    async def test_empty_defaults(self, db_session):
        service = WalletSettingsService(db_session)
        assert (await service.get_wallets(USER)).wallets == []
        overrides = await service.get_global_overrides(USER)
        assert overrides.symbol_overrides == {}
        assert overrides.address_overrides == {}

    async def test_save_and_load_wallets(self, db_session):
        service = WalletSettingsService(db_session)
        wallets = MultiWalletSettings(wallets=[
            Wallet(id="w1", address=WALLET, label="Main", symbol_overrides={"SCAM": None}),
        ])

        await service.save_wallets(USER, wallets)
        loaded = await service.get_wallets(USER)

        assert loaded.wallets[0].address == WALLET
        assert loaded.wallets[0].label == "Main"
        assert loaded.wallets[0].symbol_overrides == {"SCAM": None}

    async def test_stored_with_client_field_names(self, db_session):
        service = WalletSettingsService(db_session)
        await service.save_wallets(USER, MultiWalletSettings(wallets=[Wallet(id="w1", address=WALLET)]))

        row = (await db_session.execute(select(WalletSettings))).scalar_one()
        assert row.settings_type == SettingsType.MULTI_WALLET
        assert "symbolOverrides" in row.settings_data["wallets"][0]

    async def test_save_replaces_existing_blob(self, db_session):
        service = WalletSettingsService(db_session)
        await service.save_global_overrides(USER, GlobalOverrideSettings(symbol_overrides={"BTC": "bitcoin"}))
        await service.save_global_overrides(USER, GlobalOverrideSettings(address_overrides={"0xabc": None}))

        rows = (await db_session.execute(select(WalletSettings))).scalars().all()
        assert len(rows) == 1
        loaded = await service.get_global_overrides(USER)
        assert loaded.symbol_overrides == {}
        assert loaded.address_overrides == {"0xabc": None}

    async def test_settings_types_are_separate(self, db_session):
        service = WalletSettingsService(db_session)
        await service.save_wallets(USER, MultiWalletSettings(wallets=[Wallet(id="w1", address=WALLET)]))
        await service.save_global_overrides(USER, GlobalOverrideSettings(symbol_overrides={"BTC": "bitcoin"}))

        assert len((await service.get_wallets(USER)).wallets) == 1
        assert (await service.get_global_overrides(USER)).symbol_overrides == {"BTC": "bitcoin"}


class TestStoredSettingsType:

    async def test_settings_type_stores_value(self, db_session):
        await WalletSettingsService(db_session).save_wallets(
            USER, MultiWalletSettings(wallets=[Wallet(id="w1", address=WALLET)])
        )

        stored = (await db_session.execute(text("SELECT settings_type FROM wallet_settings"))).scalar_one()
        assert stored == SettingsType.MULTI_WALLET.value
