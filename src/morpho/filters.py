"""
Translate FilterOptions into a Morpho `VaultFilters` payload plus a residual
predicate for the fields the API cannot evaluate.

Vault metrics are exposed in percent while the API compares fractions, so yield
bounds are divided by 100 on the way out.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from src.morpho.chains import is_valid_address, resolve_chain_id
from src.morpho.errors import InvalidFilterError
from src.morpho.models import Vault

logger = logging.getLogger(__name__)

ServerPredicate = Dict[str, Any]
ResidualPredicate = Callable[[Vault], bool]

DEFAULT_ORDER_BY: str = "TotalAssetsUsd"

SORT_FIELDS: Dict[str, str] = {
    "apy": "NetApy",
    "net_apy": "NetApy",
    "total_assets": "TotalAssets",
    "total_assets_usd": "TotalAssetsUsd",
    "creation_timestamp": "CreationTimestamp",
    # camelCase spellings of the same fields
    "netApy": "NetApy",
    "totalAssets": "TotalAssets",
    "totalAssetsUsd": "TotalAssetsUsd",
    "creationTimestamp": "CreationTimestamp",
}


@dataclass(frozen=True)
class FilterOptions:
    """Declarative vault filter. None / False means "no constraint"."""

    asset_symbol: Optional[str] = None
    asset_address: Optional[str] = None
    chain: Optional[Union[str, int]] = None
    chain_id: Optional[int] = None
    min_apy: Optional[float] = None
    max_apy: Optional[float] = None
    min_net_apy: Optional[float] = None
    max_net_apy: Optional[float] = None
    min_tvl: Optional[float] = None
    max_tvl: Optional[float] = None
    min_total_assets: Optional[int] = None
    max_total_assets: Optional[int] = None
    whitelisted_only: bool = False
    exclude_idle: bool = False
    sort_by: Optional[str] = None
    sort_order: str = "desc"
    limit: Optional[int] = None


@dataclass(frozen=True)
class FilterPlan:
    """Server-side `where` payload (None when unconstrained) and the local residual."""

    server_predicate: Optional[ServerPredicate]
    residual_predicate: ResidualPredicate


def _accept_all(vault: Vault) -> bool:
    return True


def _is_active(vault: Vault) -> bool:
    return not vault.is_idle


def _fraction(percent: float) -> float:
    return float(Decimal(str(percent)) / 100)


def _check_range(name: str, low: Optional[float], high: Optional[float]) -> None:
    if low is not None and high is not None and low > high:
        raise InvalidFilterError(f"min_{name} ({low}) is greater than max_{name} ({high})")


def validate_options(options: FilterOptions) -> None:
    """Fail fast on options that cannot describe any vault set."""
    if options.limit is not None and options.limit <= 0:
        raise InvalidFilterError(f"limit must be positive, got {options.limit}")
    if options.asset_symbol is not None and not options.asset_symbol.strip():
        raise InvalidFilterError("asset_symbol must not be blank")
    if options.asset_address is not None and not is_valid_address(options.asset_address):
        raise InvalidFilterError(f"Invalid asset address: {options.asset_address}")

    for name in ("min_tvl", "max_tvl", "min_total_assets", "max_total_assets"):
        value = getattr(options, name)
        if value is not None and value < 0:
            raise InvalidFilterError(f"{name} must not be negative, got {value}")

    _check_range("apy", options.min_apy, options.max_apy)
    _check_range("net_apy", options.min_net_apy, options.max_net_apy)
    _check_range("tvl", options.min_tvl, options.max_tvl)
    _check_range("total_assets", options.min_total_assets, options.max_total_assets)


def resolve_filter_chain(options: FilterOptions) -> Optional[int]:
    """chain_id wins; a numeric chain is used as-is; a chain name goes through the static table."""
    if options.chain_id is not None:
        return options.chain_id
    if options.chain is None:
        return None
    if isinstance(options.chain, int) and not isinstance(options.chain, bool):
        return options.chain
    return resolve_chain_id(options.chain)


def build_filters(options: FilterOptions) -> FilterPlan:
    """Split options into the API `where` payload and the client-side residual predicate."""
    validate_options(options)

    where: ServerPredicate = {}

    chain_id = resolve_filter_chain(options)
    if chain_id is not None:
        where["chainId_in"] = [chain_id]
    if options.asset_symbol is not None:
        where["assetSymbol_in"] = [options.asset_symbol.strip()]
    if options.asset_address is not None:
        where["assetAddress_in"] = [options.asset_address]
    if options.whitelisted_only:
        where["whitelisted"] = True

    if options.min_apy is not None:
        where["apy_gte"] = _fraction(options.min_apy)
    if options.max_apy is not None:
        where["apy_lte"] = _fraction(options.max_apy)
    if options.min_net_apy is not None:
        where["netApy_gte"] = _fraction(options.min_net_apy)
    if options.max_net_apy is not None:
        where["netApy_lte"] = _fraction(options.max_net_apy)

    if options.min_tvl is not None:
        where["totalAssetsUsd_gte"] = float(options.min_tvl)
    if options.max_tvl is not None:
        where["totalAssetsUsd_lte"] = float(options.max_tvl)

    # BigInt scalars travel as strings.
    if options.min_total_assets is not None:
        where["totalAssets_gte"] = str(int(options.min_total_assets))
    if options.max_total_assets is not None:
        where["totalAssets_lte"] = str(int(options.max_total_assets))

    residual = _is_active if options.exclude_idle else _accept_all
    return FilterPlan(server_predicate=where or None, residual_predicate=residual)


def map_sort(options: FilterOptions) -> Tuple[str, str]:
    """Map sort_by / sort_order onto the VaultOrderBy and OrderDirection enums."""
    order_by = DEFAULT_ORDER_BY
    if options.sort_by is not None:
        if options.sort_by in SORT_FIELDS:
            order_by = SORT_FIELDS[options.sort_by]
        else:
            logger.debug("Unknown sort field %r, using %s", options.sort_by, DEFAULT_ORDER_BY)

    direction = "Asc" if (options.sort_order or "").lower() == "asc" else "Desc"
    return order_by, direction


def apply_residual(vaults: Iterable[Vault], predicate: ResidualPredicate) -> List[Vault]:
    return [vault for vault in vaults if predicate(vault)]


def vault_matches(vault: Vault, options: FilterOptions) -> bool:
    """
    Evaluate every constraint of `options` locally against a materialized vault.

    Bounds compare in vault units (percent yields, USD TVL, raw total assets).
    Asset symbols compare case-insensitively and addresses ignore checksum case.
    """
    chain_id = resolve_filter_chain(options)
    if chain_id is not None and vault.chain.id != chain_id:
        return False
    if options.asset_symbol is not None and vault.asset.symbol.lower() != options.asset_symbol.strip().lower():
        return False
    if options.asset_address is not None and vault.asset.address.lower() != options.asset_address.lower():
        return False
    if options.whitelisted_only and not vault.whitelisted:
        return False
    if options.exclude_idle and vault.is_idle:
        return False

    metrics = vault.metrics
    total_assets = int(metrics.total_assets)
    bounds = (
        (metrics.apy, options.min_apy, options.max_apy),
        (metrics.net_apy, options.min_net_apy, options.max_net_apy),
        (metrics.total_assets_usd, options.min_tvl, options.max_tvl),
        (total_assets, options.min_total_assets, options.max_total_assets),
    )
    for value, low, high in bounds:
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
    return True
