"""
Tests for wallet address detection.
"""
import pytest

from app.utils.address_validation import (
    ChainFamily,
    detect_chain_family,
    is_bitcoin_address,
    is_evm_address,
    normalize_token_address,
)


pytestmark = pytest.mark.unit


class TestDetectChainFamily:

    @pytest.mark.parametrize("address,family", [
        ("0x742d35Cc6634C0532925a3b844Bc454e4438f44e", ChainFamily.EVM),
        ("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", ChainFamily.BITCOIN),
        ("3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy", ChainFamily.BITCOIN),
        ("bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq", ChainFamily.BITCOIN),
        ("cosmos1hsk6jryyqjfhp5dhc55tc9jtckygx0eph6dd02", ChainFamily.COSMOS),
        ("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM", ChainFamily.SOLANA),
    ])
    def test_known_formats(self, address, family):
        assert detect_chain_family(address) == family

    def test_surrounding_whitespace(self):
        assert detect_chain_family("  0x742d35Cc6634C0532925a3b844Bc454e4438f44e ") == ChainFamily.EVM

    @pytest.mark.parametrize("address", [
        "",
        None,
        "0x123",
        "not an address",
        "0x742d35Cc6634C0532925a3b844Bc454e4438f44g",
    ])
    def test_unknown_formats(self, address):
        assert detect_chain_family(address) is None


class TestHelpers:

    def test_is_evm_address(self):
        assert is_evm_address("0x742d35Cc6634C0532925a3b844Bc454e4438f44e")
        assert not is_evm_address("742d35Cc6634C0532925a3b844Bc454e4438f44e")
        assert not is_evm_address(None)

    def test_is_bitcoin_address(self):
        assert is_bitcoin_address("BC1QAR0SRRR7XFKVY5L643LYDNW9RE59GTZZWF5MDQ")
        assert not is_bitcoin_address("0x742d35Cc6634C0532925a3b844Bc454e4438f44e")

    def test_normalize_token_address(self):
        assert normalize_token_address("0xA0b86991c6218b36c1D19D4a2e9Eb0cE3606eB48") == \
            "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
        mint = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        assert normalize_token_address(mint) == mint
        assert normalize_token_address(None) == ""
