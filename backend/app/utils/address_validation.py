"""
Wallet address detection.

Maps an address string onto the chain family whose balance provider can
answer for it: EVM hex, Bitcoin (P2PKH, P2SH, Bech32), Cosmos Bech32 and
Solana base58.
"""
import enum
import re
from typing import Optional

# Bitcoin address validation patterns
BITCOIN_P2PKH_PATTERN = re.compile(r'^1[a-km-zA-HJ-NP-Z1-9]{25,34}$')
BITCOIN_P2SH_PATTERN = re.compile(r'^3[a-km-zA-HJ-NP-Z1-9]{33}$')
BITCOIN_BECH32_PATTERN = re.compile(r'^bc1[ac-hj-np-z02-9]{8,87}$')

# EVM address validation pattern (Ethereum and compatible chains)
EVM_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')

# Cosmos Hub account address
COSMOS_PATTERN = re.compile(r'^cosmos1[ac-hj-np-z02-9]{38}$')

# Solana public key (base58, 32 bytes)
SOLANA_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')


class ChainFamily(str, enum.Enum):
    """Families of chains sharing one balance provider."""
    EVM = "evm"
    BITCOIN = "bitcoin"
    SOLANA = "solana"
    COSMOS = "cosmos"


def is_evm_address(address: str) -> bool:
    return bool(EVM_PATTERN.match(address or ""))


def is_bitcoin_address(address: str) -> bool:
    address = (address or "").strip()
    return bool(
        BITCOIN_P2PKH_PATTERN.match(address)
        or BITCOIN_P2SH_PATTERN.match(address)
        or BITCOIN_BECH32_PATTERN.match(address.lower())
    )


def detect_chain_family(address: str) -> Optional[ChainFamily]:
    """
    Detect the chain family of a wallet address.

    Bitcoin is checked before Solana since short base58 strings starting
    with 1 or 3 are valid under both alphabets.

    Returns:
        The matching ChainFamily, or None when the format is not recognised
    """
    if not address:
        return None
    address = address.strip()

    if is_evm_address(address):
        return ChainFamily.EVM
    if is_bitcoin_address(address):
        return ChainFamily.BITCOIN
    if COSMOS_PATTERN.match(address):
        return ChainFamily.COSMOS
    if SOLANA_PATTERN.match(address):
        return ChainFamily.SOLANA
    return None


def normalize_token_address(address: Optional[str]) -> str:
    """Lower-case EVM hex addresses; other chains' addresses are case-sensitive."""
    if not address:
        return ""
    if is_evm_address(address):
        return address.lower()
    return address
