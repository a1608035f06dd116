from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from src.config import Settings
from src.discovery.summary import vaults_to_frame
from src.discovery.vaults import VaultDiscovery
from src.morpho.chains import get_chain_name, resolve_chain_id
from src.morpho.filters import FilterOptions
from src.morpho.gql_client import RetryingMorphoGraphQLClient


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize Morpho vaults on a chain and export them to parquet.")
    parser.add_argument("chain", help="Chain name or id, e.g. base or 8453")
    parser.add_argument("--output-dir", type=Path, default=Path("data/processed"))
    parser.add_argument("--top", type=int, default=5)
    return parser.parse_args()


async def run(chain: str, output_dir: Path, top: int) -> None:
    """Print a chain summary and write every vault on the chain to <output_dir>/vaults_<chain>.parquet."""
    settings = Settings.from_env()
    client = RetryingMorphoGraphQLClient(
        base_url=settings.morpho_graphql_url,
        timeout_seconds=settings.timeout_seconds,
    )
    discovery = VaultDiscovery(client, settings)
    chain_id = resolve_chain_id(chain)

    summary = await discovery.chain_summary(chain_id, top_n=top)
    print(f"{summary.chain_name} ({summary.chain_id}): {summary.total_vaults} vaults, TVL ${summary.total_tvl:,.0f}")
    for breakdown in summary.asset_breakdown:
        print(
            f"  {breakdown.symbol:<10} vaults={breakdown.count:<4} "
            f"TVL=${breakdown.total_tvl:,.0f} maxNetAPY={breakdown.max_net_apy:.2f}%"
        )
    print("Top by net APY:")
    for vault in summary.top_vaults_by_net_apy:
        print(f"  {vault.name} {vault.address} {vault.metrics.net_apy:.2f}%")

    vaults = await discovery.get_vaults(
        FilterOptions(chain_id=chain_id, sort_by="total_assets_usd", limit=settings.max_page_size)
    )
    vaults_df = vaults_to_frame(vaults)

    output_path = output_dir / f"vaults_{get_chain_name(chain_id)}.parquet"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    vaults_df.to_parquet(output_path, index=False)
    print(f"Wrote {output_path} rows={len(vaults_df)}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args()
    asyncio.run(run(args.chain, args.output_dir, args.top))


if __name__ == "__main__":
    main()
