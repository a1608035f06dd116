from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict

from src.morpho.errors import InvalidFilterError
from src.morpho.filters import FilterOptions

VAULT_FILTER_PRESETS: Dict[str, FilterOptions] = {
    # Best yields among vaults with meaningful deposits.
    "high_yield": FilterOptions(
        min_net_apy=5.0,
        min_tvl=100_000,
        exclude_idle=True,
        sort_by="net_apy",
        sort_order="desc",
        limit=20,
    ),
    # Curated, large vaults.
    "stable": FilterOptions(
        whitelisted_only=True,
        min_tvl=1_000_000,
        exclude_idle=True,
        sort_by="total_assets_usd",
        sort_order="desc",
        limit=20,
    ),
    "high_tvl": FilterOptions(
        min_tvl=10_000_000,
        exclude_idle=True,
        sort_by="total_assets_usd",
        sort_order="desc",
        limit=20,
    ),
}


def preset_options(preset: str, **overrides: Any) -> FilterOptions:
    """Return a preset's FilterOptions with keyword overrides applied."""
    try:
        base = VAULT_FILTER_PRESETS[preset]
    except KeyError:
        raise InvalidFilterError(
            f"Unknown preset {preset!r}. Available presets: {', '.join(VAULT_FILTER_PRESETS)}"
        ) from None
    try:
        return replace(base, **overrides)
    except TypeError as exc:
        raise InvalidFilterError(f"Invalid preset override: {exc}") from exc
