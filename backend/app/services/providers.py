"""
Balance providers.

One client per chain family, each returning the provider's raw payload as a
ProviderBalances variant for the normalizer:
- EVM: Moralis ``wallets/{address}/tokens?chain=`` for every configured chain
- Solana: JSON-RPC ``getBalance`` + ``getTokenAccountsByOwner`` (jsonParsed)
- Bitcoin: Blockstream ``address/{address}`` chain stats
- Cosmos: LCD ``cosmos/bank/v1beta1/balances/{address}``

Upstream calls are retried with linear backoff; a call that still fails
raises UpstreamError. Moralis treats each chain independently: a chain
that fails contributes no tokens instead of failing the whole wallet.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from app.config import settings
from app.errors import UpstreamError
from app.schemas.balance import (
    ProviderBalances,
    EvmToken,
    EvmTokenBalances,
    SolanaBalances,
    SolanaTokenAccount,
    BitcoinBalance,
    CosmosBalances,
    CosmosCoin,
)
from app.services.http_client import fetch_json
from app.utils.address_validation import ChainFamily
from app.utils.retry import retry_async

logger = logging.getLogger(__name__)

SOLANA_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


class BalanceProvider:
    """Base class for balance providers."""

    name = "provider"
    family: ChainFamily

    async def _request(self, url: str, **kwargs) -> Any:
        """fetch_json with the configured retry policy."""
        return await retry_async(
            lambda: fetch_json(url, provider=self.name, **kwargs),
            max_retries=settings.provider_max_retries,
            delay=settings.provider_retry_delay_seconds,
            retry_on=(UpstreamError,),
            description=f"{self.name} request"
        )

    async def fetch(self, address: str) -> List[ProviderBalances]:
        raise NotImplementedError


class MoralisProvider(BalanceProvider):
    """EVM token balances from Moralis."""

    name = "moralis"
    family = ChainFamily.EVM

    def __init__(self, chains: Optional[List[str]] = None):
        self.chains = chains or list(settings.moralis_chains)

    async def fetch_chain(self, address: str, chain: str) -> EvmTokenBalances:
        data = await self._request(
            f"{settings.moralis_api_url}/wallets/{address}/tokens",
            params={"chain": chain},
            headers={"X-API-Key": settings.moralis_api_key}
        )
        results = data.get("result", []) if isinstance(data, dict) else (data or [])
        tokens = [
            EvmToken(**{key: value for key, value in token.items() if value is not None})
            for token in results
            if token.get("balance") and token.get("balance") != "0"
        ]
        return EvmTokenBalances(chain=chain, tokens=tokens)

    async def _fetch_chain_or_empty(self, address: str, chain: str) -> EvmTokenBalances:
        try:
            return await self.fetch_chain(address, chain)
        except UpstreamError as e:
            logger.warning(f"Moralis balances for {address} on {chain} unavailable: {e.message}")
            return EvmTokenBalances(chain=chain, tokens=[])

    async def fetch(self, address: str) -> List[ProviderBalances]:
        results = await asyncio.gather(
            *(self._fetch_chain_or_empty(address, chain) for chain in self.chains)
        )
        return list(results)


class SolanaProvider(BalanceProvider):
    """Native SOL and SPL token balances over Solana JSON-RPC."""

    name = "solana-rpc"
    family = ChainFamily.SOLANA

    async def _rpc(self, method: str, params: List[Any]) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        response = await self._request(settings.solana_rpc_url, method="POST", json_body=payload)
        if "error" in response:
            error = response["error"] or {}
            raise UpstreamError(
                f"RPC error {error.get('code')}: {error.get('message', 'Unknown RPC error')}",
                provider=self.name
            )
        if "result" not in response:
            raise UpstreamError("Invalid RPC response", provider=self.name)
        return response["result"]

    async def fetch(self, address: str) -> List[ProviderBalances]:
        balance = await self._rpc("getBalance", [address])
        lamports = balance.get("value") if isinstance(balance, dict) else None
        if not isinstance(lamports, int):
            raise UpstreamError("Invalid RPC response", provider=self.name)

        accounts = await self._rpc(
            "getTokenAccountsByOwner",
            [address, {"programId": SOLANA_TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}]
        )
        tokens = []
        for account in accounts.get("value", []):
            info = account.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
            amount = info.get("tokenAmount", {})
            if not info.get("mint"):
                continue
            tokens.append(SolanaTokenAccount(
                mint=info["mint"],
                amount=str(amount.get("amount", "0")),
                decimals=int(amount.get("decimals", 0)),
                ui_amount_string=amount.get("uiAmountString"),
            ))
        return [SolanaBalances(lamports=lamports, tokens=tokens)]


class BlockstreamProvider(BalanceProvider):
    """Confirmed Bitcoin balance from Blockstream."""

    name = "blockstream"
    family = ChainFamily.BITCOIN

    async def fetch(self, address: str) -> List[ProviderBalances]:
        data = await self._request(f"{settings.blockstream_api_url}/address/{address}")
        stats = data.get("chain_stats", {})
        satoshis = int(stats.get("funded_txo_sum", 0)) - int(stats.get("spent_txo_sum", 0))
        return [BitcoinBalance(address=address, satoshis=satoshis)]


class CosmosProvider(BalanceProvider):
    """Bank balances from a Cosmos LCD endpoint."""

    name = "cosmos-lcd"
    family = ChainFamily.COSMOS

    async def fetch(self, address: str) -> List[ProviderBalances]:
        data = await self._request(f"{settings.cosmos_lcd_url}/cosmos/bank/v1beta1/balances/{address}")
        coins = [CosmosCoin(denom=c["denom"], amount=str(c.get("amount", "0"))) for c in data.get("balances", [])]
        return [CosmosBalances(balances=coins)]


def default_providers() -> Dict[ChainFamily, BalanceProvider]:
    return {
        ChainFamily.EVM: MoralisProvider(),
        ChainFamily.SOLANA: SolanaProvider(),
        ChainFamily.BITCOIN: BlockstreamProvider(),
        ChainFamily.COSMOS: CosmosProvider(),
    }
