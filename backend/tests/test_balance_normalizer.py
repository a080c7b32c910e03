"""
Tests for the balance normalizer.
"""
import pytest
from decimal import Decimal

from app.schemas.balance import (
    BitcoinBalance,
    CosmosBalances,
    CosmosCoin,
    EvmToken,
    EvmTokenBalances,
    SolanaBalances,
    SolanaTokenAccount,
    TokenBalance,
)
from app.services.balance_normalizer import (
    NORMALIZERS,
    check_normalizer_coverage,
    format_decimal,
    normalize_balances,
    scale_units,
    to_decimal,
    with_price,
)


pytestmark = pytest.mark.unit

USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


class TestDecimalHelpers:

    def test_scale_units(self):
        assert scale_units("1500000", 6) == Decimal("1.5")
        assert scale_units(123456789, 9) == Decimal("0.123456789")

    def test_format_decimal(self):
        assert format_decimal(Decimal("1.500")) == "1.5"
        assert format_decimal(Decimal("100")) == "100"
        assert format_decimal(Decimal("0.000")) == "0"
        assert format_decimal(Decimal("1E-8")) == "0.00000001"

    def test_to_decimal_junk_is_zero(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("") == Decimal("0")
        assert to_decimal("not-a-number") == Decimal("0")
        assert to_decimal("NaN") == Decimal("0")
        assert to_decimal("Infinity") == Decimal("0")
        assert to_decimal("-inf") == Decimal("0")


class TestEvm:

    def test_erc20_and_native(self):
        payload = EvmTokenBalances(chain="eth", tokens=[
            EvmToken(token_address="0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee", decimals=18,
                     balance="2000000000000000000", native_token=True, usd_price=3000.0),
            EvmToken(token_address=USDC, symbol="USDC", name="USD Coin", decimals=6,
                     balance="2500000", usd_price=1.0, logo="https://logo/usdc.png"),
        ])

        balances = normalize_balances(payload)

        assert [b.symbol for b in balances] == ["ETH", "USDC"]
        eth, usdc = balances
        assert eth.token_address == ""
        assert eth.name == "Ethereum"
        assert eth.balance == "2"
        assert eth.value_usd == pytest.approx(6000.0)
        assert usdc.token_address == USDC
        assert usdc.balance == "2.5"
        assert usdc.value_usd == pytest.approx(2.5)
        assert usdc.logo_url == "https://logo/usdc.png"
        assert usdc.chain == "eth"

    def test_prefers_formatted_balance(self):
        payload = EvmTokenBalances(chain="polygon", tokens=[
            EvmToken(token_address=USDC, symbol="USDC", decimals=6, balance="999", balance_formatted="12.75"),
        ])
        assert normalize_balances(payload)[0].balance == "12.75"

    def test_drops_spam_and_zero(self):
        payload = EvmTokenBalances(chain="bsc", tokens=[
            EvmToken(token_address=USDC, symbol="FREE", decimals=18, balance="1000", possible_spam=True),
            EvmToken(token_address=USDC, symbol="ZERO", decimals=18, balance="0"),
        ])
        assert normalize_balances(payload) == []

    def test_non_finite_amounts_are_dropped(self):
        payload = EvmTokenBalances(chain="eth", tokens=[
            EvmToken(token_address=USDC, symbol="BAD", decimals=6, balance="1", balance_formatted="NaN"),
            EvmToken(token_address=USDC, symbol="HUGE", decimals=6, balance="1", balance_formatted="Infinity"),
            EvmToken(token_address=USDC, symbol="USDC", decimals=6, balance="2500000"),
        ])
        assert [b.symbol for b in normalize_balances(payload)] == ["USDC"]

    def test_missing_price_is_zero(self):
        payload = EvmTokenBalances(chain="eth", tokens=[
            EvmToken(token_address=USDC, symbol="NEW", decimals=0, balance="5"),
        ])
        balance = normalize_balances(payload)[0]
        assert balance.price_usd == 0.0
        assert balance.value_usd == 0.0
        assert balance.name == "NEW"


class TestSolana:

    def test_sol_and_spl(self):
        payload = SolanaBalances(lamports=1_500_000_000, tokens=[
            SolanaTokenAccount(mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", amount="2000000",
                               decimals=6, ui_amount_string="2"),
            SolanaTokenAccount(mint="DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", amount="0", decimals=5),
        ])

        balances = normalize_balances(payload)

        assert len(balances) == 2
        sol, spl = balances
        assert (sol.symbol, sol.balance, sol.decimals, sol.token_address) == ("SOL", "1.5", 9, "")
        assert spl.token_address == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        assert spl.symbol == "EPJFWD"
        assert spl.balance == "2"
        assert spl.chain == "solana"

    def test_empty_wallet(self):
        assert normalize_balances(SolanaBalances(lamports=0)) == []


class TestBitcoin:

    def test_satoshis(self):
        balances = normalize_balances(BitcoinBalance(address="bc1qexample", satoshis=150_000_000))
        assert len(balances) == 1
        assert balances[0].symbol == "BTC"
        assert balances[0].balance == "1.5"
        assert balances[0].decimals == 8

    def test_zero_balance_still_reported(self):
        balances = normalize_balances(BitcoinBalance(address="bc1qexample", satoshis=0))
        assert balances[0].balance == "0"


class TestCosmos:

    def test_micro_denoms(self):
        payload = CosmosBalances(balances=[
            CosmosCoin(denom="uatom", amount="2500000"),
            CosmosCoin(denom="uosmo", amount="1000000"),
        ])

        balances = normalize_balances(payload)

        assert [(b.symbol, b.name, b.balance) for b in balances] == [
            ("ATOM", "Cosmos Hub", "2.5"),
            ("OSMO", "OSMO", "1"),
        ]

    def test_ibc_denom_is_raw(self):
        denom = "ibc/27394FB092D2ECCD56123C74F36E4C1F926001CEADA9CA97EA622B25F41E5EB2"
        balances = normalize_balances(CosmosBalances(balances=[CosmosCoin(denom=denom, amount="42")]))
        assert balances[0].symbol == denom
        assert balances[0].token_address == denom
        assert balances[0].decimals == 0
        assert balances[0].balance == "42"


class TestDispatch:

    def test_unknown_payload(self):
        with pytest.raises(TypeError):
            normalize_balances({"kind": "evm"})

    def test_with_price(self):
        balance = TokenBalance(symbol="ETH", name="Ethereum", balance="1.5", decimals=18)
        priced = with_price(balance, 2000.0)
        assert priced.price_usd == 2000.0
        assert priced.value_usd == pytest.approx(3000.0)
        assert balance.price_usd == 0.0


class TestNormalizerTable:

    def test_every_variant_covered(self):
        check_normalizer_coverage(
            (EvmTokenBalances, SolanaBalances, BitcoinBalance, CosmosBalances), NORMALIZERS
        )

    def test_missing_variant_raises(self):
        partial = {EvmTokenBalances: NORMALIZERS[EvmTokenBalances]}
        with pytest.raises(RuntimeError):
            check_normalizer_coverage((EvmTokenBalances, SolanaBalances), partial)
