from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

import pandas as pd

from src.morpho.models import Vault

VAULT_FRAME_COLUMNS: List[str] = [
    "address",
    "name",
    "symbol",
    "asset_symbol",
    "asset_address",
    "chain_id",
    "network",
    "apy",
    "net_apy",
    "total_assets",
    "total_assets_units",
    "total_assets_usd",
    "fee",
    "whitelisted",
    "creation_timestamp",
    "is_idle",
]


@dataclass(frozen=True)
class AssetBreakdown:
    """Per-asset aggregate within one chain."""
    symbol: str
    count: int
    total_tvl: float
    max_net_apy: float


@dataclass(frozen=True)
class ChainSummary:
    """Discovery overview for a single chain."""
    chain_id: int
    chain_name: str
    total_vaults: int
    total_tvl: float
    top_vaults_by_tvl: List[Vault] = field(default_factory=list)
    top_vaults_by_net_apy: List[Vault] = field(default_factory=list)
    asset_breakdown: List[AssetBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class ChainVaultCount:
    chain_id: int
    name: str
    vault_count: int


def vaults_to_frame(vaults: Sequence[Vault]) -> pd.DataFrame:
    """Flatten vaults into one row each, preserving input order."""
    rows = []
    for vault in vaults:
        rows.append(
            {
                "address": vault.address,
                "name": vault.name,
                "symbol": vault.symbol,
                "asset_symbol": vault.asset.symbol,
                "asset_address": vault.asset.address,
                "chain_id": vault.chain.id,
                "network": vault.chain.network,
                "apy": vault.metrics.apy,
                "net_apy": vault.metrics.net_apy,
                "total_assets": vault.metrics.total_assets,
                "total_assets_units": float(vault.total_assets_units),
                "total_assets_usd": vault.metrics.total_assets_usd,
                "fee": vault.metrics.fee,
                "whitelisted": vault.whitelisted,
                "creation_timestamp": vault.creation_timestamp,
                "is_idle": vault.is_idle,
            }
        )
    return pd.DataFrame(rows, columns=VAULT_FRAME_COLUMNS)


def asset_breakdown(vaults_df: pd.DataFrame) -> List[AssetBreakdown]:
    """Group vaults by asset symbol, largest total TVL first."""
    if vaults_df.empty:
        return []

    grouped = (
        vaults_df.groupby("asset_symbol", sort=False)
        .agg(
            vault_count=("address", "size"),
            total_tvl=("total_assets_usd", "sum"),
            max_net_apy=("net_apy", "max"),
        )
        .reset_index()
        .sort_values(["total_tvl", "asset_symbol"], ascending=[False, True])
    )

    return [
        AssetBreakdown(
            symbol=str(row.asset_symbol),
            count=int(row.vault_count),
            total_tvl=float(row.total_tvl),
            max_net_apy=float(row.max_net_apy),
        )
        for row in grouped.itertuples(index=False)
    ]


def build_chain_summary(
    chain_id: int,
    chain_name: str,
    vaults_by_tvl: Sequence[Vault],
    vaults_by_net_apy: Sequence[Vault],
    top_n: int = 5,
) -> ChainSummary:
    """
    Summarize a chain from two server-ordered vault lists.

    `vaults_by_tvl` is the full chain listing (TVL descending) and drives the
    counts and the asset breakdown; `vaults_by_net_apy` only feeds the yield top list.
    """
    vaults_df = vaults_to_frame(vaults_by_tvl)
    total_tvl = float(vaults_df["total_assets_usd"].sum()) if not vaults_df.empty else 0.0

    return ChainSummary(
        chain_id=chain_id,
        chain_name=chain_name,
        total_vaults=len(vaults_df),
        total_tvl=total_tvl,
        top_vaults_by_tvl=list(vaults_by_tvl[:top_n]),
        top_vaults_by_net_apy=list(vaults_by_net_apy[:top_n]),
        asset_breakdown=asset_breakdown(vaults_df),
    )
