"""
Shared fixtures: raw Morpho vault records and an in-memory fake of the
Morpho GraphQL API served through httpx.MockTransport.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from src.config import Settings
from src.discovery.vaults import VaultDiscovery
from src.morpho.gql_client import MorphoGraphQLClient
from src.morpho.pipeline import VaultPipeline

API_URL = "https://morpho.test/graphql"

USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WETH_BASE = "0x4200000000000000000000000000000000000006"
USDC_ETH = "0xA0b86991c6218A36c1D19D4a2e9Eb0cE3606eB48"
WETH_ETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"

NETWORKS = {1: "ethereum", 8453: "base", 42161: "arbitrum"}


def vault_address(index: int) -> str:
    return f"0x{index:040x}"


def make_raw_vault(
    index: int,
    *,
    name: str = "Vault",
    symbol: str = "mVLT",
    asset_symbol: str = "USDC",
    asset_address: str = USDC_BASE,
    asset_name: Optional[str] = None,
    decimals: int = 6,
    chain_id: int = 8453,
    apy: float = 0.05,
    net_apy: Optional[float] = None,
    total_assets: Any = "1000000000",
    total_assets_usd: float = 1_000_000.0,
    fee: float = 0.1,
    whitelisted: bool = True,
    creation_timestamp: int = 1_700_000_000,
    rewards: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Raw record shaped like the Morpho `vaults.items[]` payload (fractional yields)."""
    return {
        "address": vault_address(index),
        "name": name,
        "symbol": symbol,
        "whitelisted": whitelisted,
        "creationTimestamp": creation_timestamp,
        "asset": {
            "address": asset_address,
            "symbol": asset_symbol,
            "name": asset_name or asset_symbol,
            "decimals": decimals,
        },
        "chain": {"id": chain_id, "network": NETWORKS.get(chain_id, "unknown")},
        "state": {
            "apy": apy,
            "netApy": net_apy if net_apy is not None else apy,
            "totalAssets": total_assets,
            "totalAssetsUsd": total_assets_usd,
            "fee": fee,
            "rewards": rewards or [],
        },
    }


def _get(record: Dict[str, Any], path: str, default: Any = None) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return default if value is None else value


def _matches_where(record: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    if not where:
        return True
    for key, expected in where.items():
        if key == "chainId_in" and _get(record, "chain.id") not in expected:
            return False
        if key == "assetSymbol_in" and _get(record, "asset.symbol") not in expected:
            return False
        if key == "assetAddress_in":
            wanted = {address.lower() for address in expected}
            if str(_get(record, "asset.address", "")).lower() not in wanted:
                return False
        if key == "whitelisted" and bool(_get(record, "whitelisted", False)) != expected:
            return False

        field, _, op = key.rpartition("_")
        if op not in ("gte", "lte"):
            continue
        if field == "totalAssets":
            value, bound = int(_get(record, "state.totalAssets", 0)), int(expected)
        else:
            value, bound = float(_get(record, f"state.{field}", 0.0)), float(expected)
        if op == "gte" and value < bound:
            return False
        if op == "lte" and value > bound:
            return False
    return True


SORT_KEYS = {
    "NetApy": lambda r: float(_get(r, "state.netApy", 0.0)),
    "Apy": lambda r: float(_get(r, "state.apy", 0.0)),
    "TotalAssetsUsd": lambda r: float(_get(r, "state.totalAssetsUsd", 0.0)),
    "TotalAssets": lambda r: int(_get(r, "state.totalAssets", 0)),
    "CreationTimestamp": lambda r: int(_get(r, "creationTimestamp", 0)),
}


class FakeMorphoService:
    """Evaluates `where`, `orderBy`, `orderDirection` and `first` like the real API."""

    def __init__(self, vaults: List[Any]) -> None:
        self.vaults = list(vaults)
        self.requests: List[Dict[str, Any]] = []
        self.status_code: Optional[int] = None
        self.graphql_errors: Optional[List[Dict[str, Any]]] = None
        self.failing_chains: set = set()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_variables(self) -> Dict[str, Any]:
        return self.requests[-1]["variables"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        variables = payload.get("variables") or {}

        if self.status_code is not None:
            return httpx.Response(self.status_code, text="upstream unavailable")
        if self.graphql_errors is not None:
            return httpx.Response(200, json={"errors": self.graphql_errors})

        if "vaultByAddress(" in payload["query"]:
            return self._vault_by_address(variables)

        where = variables.get("where")
        if where and set(where.get("chainId_in", [])) & self.failing_chains:
            return httpx.Response(502, text="bad gateway")

        items = [record for record in self.vaults if _matches_where(record, where)]
        sort_key = SORT_KEYS[variables.get("orderBy", "TotalAssetsUsd")]
        items.sort(key=sort_key, reverse=variables.get("orderDirection") == "Desc")
        items = items[: variables.get("first", 100)]
        return httpx.Response(200, json={"data": {"vaults": {"items": items}}})

    def _vault_by_address(self, variables: Dict[str, Any]) -> httpx.Response:
        for record in self.vaults:
            if (
                str(_get(record, "address", "")).lower() == variables["address"].lower()
                and _get(record, "chain.id") == variables["chainId"]
            ):
                return httpx.Response(200, json={"data": {"vaultByAddress": record}})
        return httpx.Response(
            200,
            json={
                "data": None,
                "errors": [
                    {
                        "message": "No results matching given parameters",
                        "extensions": {"code": "NOT_FOUND"},
                    }
                ],
            },
        )


def sample_raw_vaults() -> List[Dict[str, Any]]:
    return [
        make_raw_vault(1, name="Gauntlet USDC Prime", symbol="gtUSDCp", apy=0.08, net_apy=0.07,
                       total_assets_usd=5_000_000.0, total_assets="5000000000000"),
        make_raw_vault(2, name="Moonwell Flagship USDC", symbol="mwUSDC", apy=0.12, net_apy=0.10,
                       total_assets_usd=1_500_000.0, total_assets="1500000000000", whitelisted=False),
        make_raw_vault(3, name="Tiny USDC", symbol="tUSDC", apy=0.30, net_apy=0.28,
                       total_assets_usd=50.0, total_assets="50000000", whitelisted=False),
        make_raw_vault(4, name="Steakhouse USDC", symbol="steakUSDC", asset_address=USDC_ETH, chain_id=1,
                       apy=0.06, net_apy=0.055, total_assets_usd=200_000_000.0, total_assets="200000000000000"),
        make_raw_vault(5, name="Seamless WETH Vault", symbol="smWETH", asset_symbol="WETH", asset_name="Wrapped Ether",
                       asset_address=WETH_BASE, decimals=18, apy=0.05, net_apy=0.045,
                       total_assets_usd=2_000_000.0, total_assets="800000000000000000000"),
        make_raw_vault(6, name="Gauntlet WETH Prime", symbol="gtWETH", asset_symbol="WETH", asset_name="Wrapped Ether",
                       asset_address=WETH_ETH, decimals=18, chain_id=1, apy=0.09, net_apy=0.08,
                       total_assets_usd=30_000_000.0, total_assets="12000000000000000000000"),
        make_raw_vault(7, name="Small WETH", symbol="sWETH", asset_symbol="WETH", asset_name="Wrapped Ether",
                       asset_address=WETH_BASE, decimals=18, apy=0.20, net_apy=0.19,
                       total_assets_usd=5_000.0, total_assets="2000000000000000000", whitelisted=False),
        make_raw_vault(8, name="Re7 USDC", symbol="re7USDC", asset_address=USDC_ARB, chain_id=42161,
                       apy=0.04, net_apy=0.035, total_assets_usd=800_000.0, total_assets="800000000000"),
    ]


@pytest.fixture
def raw_vaults() -> List[Dict[str, Any]]:
    return sample_raw_vaults()


@pytest.fixture
def service(raw_vaults) -> FakeMorphoService:
    return FakeMorphoService(raw_vaults)


@pytest.fixture
def settings() -> Settings:
    return Settings(morpho_graphql_url=API_URL)


@pytest.fixture
def client(service, settings) -> MorphoGraphQLClient:
    return MorphoGraphQLClient(base_url=settings.morpho_graphql_url, transport=service.transport)


@pytest.fixture
def pipeline(client, settings) -> VaultPipeline:
    return VaultPipeline(client, settings)


@pytest.fixture
def discovery(client, settings) -> VaultDiscovery:
    return VaultDiscovery(client, settings)
