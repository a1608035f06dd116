from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from src.morpho.errors import MappingError
from src.morpho.models import (
    RawVault,
    Vault,
    VaultAsset,
    VaultChain,
    VaultMetrics,
    VaultReward,
)

DEFAULT_ASSET_DECIMALS: int = 18


def _pct(value: Optional[float]) -> float:
    """Convert a Morpho fraction (0.05) into a percentage (5.0); missing -> 0."""
    if value is None:
        return 0.0
    # Decimal so filters._fraction maps the percentage back to the same float.
    return float(Decimal(str(value)) * 100)


def _raw_amount(value: Any, field: str) -> str:
    """Normalize a raw token amount (int, float or numeric string) into an integer string."""
    if value is None:
        return "0"
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise MappingError(f"{field} is not numeric: {value!r}", field=field) from exc
    if not amount.is_finite():
        raise MappingError(f"{field} is not finite: {value!r}", field=field)
    return str(int(amount))


def map_vault(raw: Any) -> Vault:
    """
    Convert an untrusted Morpho vault record into a Vault.

    Raises MappingError when the record is not an object or when address,
    chain.id or asset.address is missing. Everything else falls back to
    zero / empty defaults.
    """
    if not isinstance(raw, dict):
        raise MappingError(f"Vault record must be an object, got {type(raw).__name__}")

    try:
        record = RawVault.model_validate(raw)
    except ValidationError as exc:
        raise MappingError(f"Malformed vault record {raw.get('address')!r}: {exc}") from exc

    if not record.address:
        raise MappingError("Vault record is missing address", field="address")
    if record.chain is None or record.chain.id is None:
        raise MappingError(f"Vault {record.address} is missing chain.id", field="chain.id")
    if record.asset is None or not record.asset.address:
        raise MappingError(f"Vault {record.address} is missing asset.address", field="asset.address")

    state = record.state
    rewards = []
    if state is not None:
        for reward in state.rewards or []:
            if reward.asset is None or not reward.asset.address:
                continue
            rewards.append(
                VaultReward(
                    asset=reward.asset.address,
                    supply_apr=_pct(reward.supplyApr),
                    yearly_supply_tokens=_raw_amount(reward.yearlySupplyTokens, "rewards.yearlySupplyTokens"),
                )
            )

    metrics = VaultMetrics(
        apy=_pct(state.apy if state else None),
        net_apy=_pct(state.netApy if state else None),
        total_assets=_raw_amount(state.totalAssets if state else None, "state.totalAssets"),
        total_assets_usd=float(state.totalAssetsUsd or 0.0) if state else 0.0,
        fee=_pct(state.fee if state else None),
        rewards=tuple(rewards),
    )

    asset = record.asset
    decimals = asset.decimals if asset.decimals is not None else DEFAULT_ASSET_DECIMALS
    return Vault(
        address=record.address,
        name=record.name or "",
        symbol=record.symbol or "",
        asset=VaultAsset(
            address=asset.address,
            symbol=asset.symbol or "",
            name=asset.name or "",
            decimals=decimals,
        ),
        chain=VaultChain(id=record.chain.id, network=record.chain.network or ""),
        metrics=metrics,
        whitelisted=bool(record.whitelisted),
        creation_timestamp=record.creationTimestamp or 0,
    )
