"""
Vault discovery facade.

Every operation goes through VaultPipeline, so filter semantics live in
`src.morpho.filters` only. The facade adds ranking conveniences, free-text
search, best-vault resolution and per-chain summaries on top.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Union

from src.config import SETTINGS, Settings
from src.discovery.presets import preset_options
from src.discovery.summary import ChainSummary, ChainVaultCount, build_chain_summary
from src.morpho.chains import (
    FALLBACK_VAULT_ADDRESSES,
    get_chain_name,
    get_supported_chain_ids,
    resolve_chain_id,
)
from src.morpho.errors import InvalidFilterError, RemoteQueryError
from src.morpho.filters import FilterOptions, vault_matches
from src.morpho.gql_client import MorphoGraphQLClient
from src.morpho.models import Vault
from src.morpho.pipeline import VaultPipeline

logger = logging.getLogger(__name__)

# Floor applied before ranking by APY so near-empty vaults cannot top the list.
BEST_VAULT_MIN_TVL_USD: float = 10_000.0

ChainRef = Union[str, int]


class ResolutionSource(str, Enum):
    LIVE = "live"
    FALLBACK = "fallback"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class VaultResolution:
    """
    Outcome of resolving a vault address for an asset on a chain.

    FALLBACK addresses come from a static table that is not kept up to date;
    callers should treat them as degraded and may refuse to act on them.
    """

    source: ResolutionSource
    address: Optional[str] = None
    vault: Optional[Vault] = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.address is not None

    @property
    def is_live(self) -> bool:
        return self.source is ResolutionSource.LIVE

    @property
    def is_degraded(self) -> bool:
        return self.source is ResolutionSource.FALLBACK


def _require_text(value: str, name: str) -> str:
    if value is None or not value.strip():
        raise InvalidFilterError(f"{name} must not be blank")
    return value.strip()


class VaultDiscovery:
    """Discovery operations over an injected Morpho GraphQL client."""

    def __init__(self, client: MorphoGraphQLClient, settings: Settings = SETTINGS) -> None:
        self._settings = settings
        self._pipeline = VaultPipeline(client, settings)

    async def get_vaults(self, options: Optional[FilterOptions] = None) -> List[Vault]:
        return await self._pipeline.get_vaults(options)

    async def top_by_yield(
        self,
        limit: int = 10,
        min_tvl: Optional[float] = None,
        chain: Optional[ChainRef] = None,
    ) -> List[Vault]:
        """Non-idle vaults by APY, highest first."""
        return await self._pipeline.get_vaults(
            FilterOptions(
                chain=chain,
                min_tvl=min_tvl,
                exclude_idle=True,
                sort_by="apy",
                sort_order="desc",
                limit=limit,
            )
        )

    async def top_by_size(self, limit: int = 10, chain: Optional[ChainRef] = None) -> List[Vault]:
        """Non-idle vaults by USD TVL, largest first."""
        return await self._pipeline.get_vaults(
            FilterOptions(
                chain=chain,
                exclude_idle=True,
                sort_by="total_assets_usd",
                sort_order="desc",
                limit=limit,
            )
        )

    async def search(self, query: str, limit: int = 20, chain: Optional[ChainRef] = None) -> List[Vault]:
        """
        Case-insensitive substring search over vault name / symbol and asset symbol / name.

        The API has no full-text search, so a large batch is fetched and matched locally.
        """
        needle = _require_text(query, "query").lower()
        if limit <= 0:
            raise InvalidFilterError(f"limit must be positive, got {limit}")

        vaults = await self._pipeline.get_vaults(FilterOptions(chain=chain, limit=self._settings.max_page_size))

        matches: List[Vault] = []
        for vault in vaults:
            haystack = (vault.name, vault.symbol, vault.asset.symbol, vault.asset.name)
            if any(needle in text.lower() for text in haystack):
                matches.append(vault)
                if len(matches) >= limit:
                    break
        return matches

    async def best_vaults_for_asset(
        self,
        symbol: str,
        limit: int = 5,
        chain: Optional[ChainRef] = None,
    ) -> List[Vault]:
        """Highest-APY non-idle vaults above the dust floor whose asset symbol equals `symbol`."""
        symbol = _require_text(symbol, "symbol")
        if limit <= 0:
            raise InvalidFilterError(f"limit must be positive, got {limit}")

        ranked = await self.top_by_yield(
            limit=self._settings.max_page_size,
            min_tvl=BEST_VAULT_MIN_TVL_USD,
            chain=chain,
        )
        wanted = FilterOptions(asset_symbol=symbol, chain=chain)
        return [vault for vault in ranked if vault_matches(vault, wanted)][:limit]

    async def resolve_vault_address(self, asset: str, chain: ChainRef) -> VaultResolution:
        """
        Pick the best vault for `asset` on `chain`.

        Local validation errors propagate. An API failure switches to the static
        fallback table, which is logged and tagged as FALLBACK.
        """
        chain_id = resolve_chain_id(chain)
        asset = _require_text(asset, "asset")

        try:
            candidates = await self.best_vaults_for_asset(asset, limit=1, chain=chain_id)
        except RemoteQueryError as exc:
            return self._fallback_resolution(asset, chain_id, exc)

        if not candidates:
            return VaultResolution(
                source=ResolutionSource.NOT_FOUND,
                reason=f"No {asset} vault above ${BEST_VAULT_MIN_TVL_USD:,.0f} TVL on chain {chain_id}",
            )

        best = candidates[0]
        return VaultResolution(source=ResolutionSource.LIVE, address=best.address, vault=best)

    def _fallback_resolution(self, asset: str, chain_id: int, error: RemoteQueryError) -> VaultResolution:
        chain_name = get_chain_name(chain_id)
        address = FALLBACK_VAULT_ADDRESSES.get(chain_name, {}).get(asset.upper())
        if address is None:
            logger.warning(
                "Morpho API unavailable and no fallback vault for %s on %s: %s", asset, chain_name, error
            )
            return VaultResolution(source=ResolutionSource.NOT_FOUND, reason=str(error))

        logger.warning(
            "Morpho API unavailable (%s); using static fallback vault %s for %s on %s. "
            "This address may be stale.",
            error,
            address,
            asset,
            chain_name,
        )
        return VaultResolution(source=ResolutionSource.FALLBACK, address=address, reason=str(error))

    async def get_by_address(self, address: str, chain_id: int) -> Optional[Vault]:
        """Single vault lookup; None when the vault does not exist."""
        return await self._pipeline.get_vault(address, chain_id)

    async def top_vault_addresses(self, chain: ChainRef, limit: int = 5) -> List[str]:
        chain_id = resolve_chain_id(chain)
        vaults = await self.top_by_size(limit=limit, chain=chain_id)
        return [vault.address for vault in vaults]

    async def get_vaults_by_preset(self, preset: str, **overrides: Any) -> List[Vault]:
        return await self._pipeline.get_vaults(preset_options(preset, **overrides))

    async def chain_summary(self, chain: ChainRef, top_n: int = 5) -> ChainSummary:
        """Vault count, TVL, top lists and asset breakdown for one chain."""
        chain_id = resolve_chain_id(chain)
        by_tvl, by_yield = await asyncio.gather(
            self._pipeline.get_vaults(
                FilterOptions(
                    chain_id=chain_id,
                    sort_by="total_assets_usd",
                    sort_order="desc",
                    limit=self._settings.max_page_size,
                )
            ),
            self.top_by_yield(limit=top_n, chain=chain_id),
        )
        return build_chain_summary(chain_id, get_chain_name(chain_id), by_tvl, by_yield, top_n=top_n)

    async def supported_chains_with_vaults(self) -> List[ChainVaultCount]:
        """Non-idle vault counts for every supported chain that has any; failed chains are skipped."""
        chain_ids = get_supported_chain_ids()
        results = await asyncio.gather(
            *(
                self._pipeline.get_vaults(
                    FilterOptions(chain_id=chain_id, exclude_idle=True, limit=self._settings.max_page_size)
                )
                for chain_id in chain_ids
            ),
            return_exceptions=True,
        )

        counts: List[ChainVaultCount] = []
        for chain_id, result in zip(chain_ids, results):
            if isinstance(result, RemoteQueryError):
                logger.warning("Could not count vaults on chain %s: %s", chain_id, result)
                continue
            if isinstance(result, BaseException):
                raise result
            if result:
                counts.append(ChainVaultCount(chain_id=chain_id, name=get_chain_name(chain_id), vault_count=len(result)))
        return counts
