from __future__ import annotations

import argparse
import asyncio
import logging

from src.config import Settings
from src.discovery.vaults import VaultDiscovery
from src.morpho.chains import get_token_address
from src.morpho.errors import InvalidFilterError
from src.morpho.gql_client import RetryingMorphoGraphQLClient


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve the best Morpho vault for an asset on a chain.")
    parser.add_argument("asset", help="Asset symbol, e.g. WETH or USDC")
    parser.add_argument("chain", help="Chain name or id, e.g. base or 8453")
    parser.add_argument("--top", type=int, default=5, help="Also list this many candidate vaults")
    return parser.parse_args()


def describe_underlying_token(asset: str, chain: str) -> str:
    try:
        return f"Underlying token: {get_token_address(asset, chain)}"
    except InvalidFilterError:
        return f"Underlying token: unknown ({asset} is not in the well-known token table for {chain})"


async def run(asset: str, chain: str, top: int) -> int:
    """Print the resolved vault and the ranked candidates; exit code 1 when nothing usable was found."""
    settings = Settings.from_env()
    client = RetryingMorphoGraphQLClient(
        base_url=settings.morpho_graphql_url,
        timeout_seconds=settings.timeout_seconds,
    )
    discovery = VaultDiscovery(client, settings)

    resolution = await discovery.resolve_vault_address(asset, chain)
    if not resolution.found:
        print(f"No vault found for {asset} on {chain}: {resolution.reason}")
        return 1

    print(f"Best {asset} vault on {chain}: {resolution.address} [{resolution.source.value}]")
    if resolution.is_degraded:
        print("WARNING: address comes from the static fallback table and may be stale.")
        return 0

    print(describe_underlying_token(asset, chain))

    for rank, vault in enumerate(await discovery.best_vaults_for_asset(asset, limit=top, chain=chain), start=1):
        print(
            f"  {rank}. {vault.name} ({vault.address}) "
            f"APY={vault.metrics.apy:.2f}% netAPY={vault.metrics.net_apy:.2f}% "
            f"TVL=${vault.metrics.total_assets_usd:,.0f}"
        )
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args()
    raise SystemExit(asyncio.run(run(args.asset, args.chain, args.top)))


if __name__ == "__main__":
    main()
