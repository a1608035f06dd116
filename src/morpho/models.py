from __future__ import annotations
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Vaults below this USD size are treated as dust when ranking.
IDLE_TVL_THRESHOLD_USD: float = 100.0


# Raw API records. Every field is optional so that validation never trusts presence.

class RawChain(BaseModel):
    """Chain block of a vault record returned by Morpho API."""
    id: Optional[int] = None
    network: Optional[str] = None

class RawAsset(BaseModel):
    """Underlying asset block of a vault record."""
    address: Optional[str] = None
    symbol: Optional[str] = None
    name: Optional[str] = None
    decimals: Optional[int] = None

class RawRewardAsset(BaseModel):
    address: Optional[str] = None

class RawReward(BaseModel):
    """Reward program attached to the vault state."""
    asset: Optional[RawRewardAsset] = None
    supplyApr: Optional[float] = None
    yearlySupplyTokens: str | int | float | None = None

class RawVaultState(BaseModel):
    """Current vault state snapshot; yields and fee are fractions (0.05 == 5%)."""
    apy: Optional[float] = None
    netApy: Optional[float] = None
    totalAssets: str | int | float | None = None
    totalAssetsUsd: Optional[float] = None
    fee: Optional[float] = None
    rewards: Optional[List[RawReward]] = None

class RawVault(BaseModel):
    """Vault record exactly as the `vaults` / `vaultByAddress` queries return it."""
    address: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    whitelisted: Optional[bool] = None
    creationTimestamp: Optional[int] = None
    asset: Optional[RawAsset] = None
    chain: Optional[RawChain] = None
    state: Optional[RawVaultState] = None


# Canonical entity.

class VaultAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    name: str
    decimals: int

class VaultChain(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    network: str

class VaultReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    supply_apr: float = 0.0
    yearly_supply_tokens: str = "0"

class VaultMetrics(BaseModel):
    """Normalized vault metrics. Yields, fee and reward APRs are percentages."""
    model_config = ConfigDict(frozen=True)

    apy: float = 0.0
    net_apy: float = 0.0
    total_assets: str = "0"
    total_assets_usd: float = 0.0
    fee: float = 0.0
    rewards: Tuple[VaultReward, ...] = Field(default_factory=tuple)

class Vault(BaseModel):
    """Immutable vault snapshot; identity is (address, chain id)."""
    model_config = ConfigDict(frozen=True)

    address: str
    name: str
    symbol: str
    asset: VaultAsset
    chain: VaultChain
    metrics: VaultMetrics
    whitelisted: bool = False
    creation_timestamp: int = 0

    @computed_field
    @property
    def is_idle(self) -> bool:
        return self.metrics.total_assets_usd < IDLE_TVL_THRESHOLD_USD

    @property
    def key(self) -> Tuple[str, int]:
        """Identity tuple with the address lowercased."""
        return self.address.lower(), self.chain.id

    @property
    def total_assets_units(self) -> Decimal:
        """Raw total assets scaled down by the asset decimals."""
        return Decimal(self.metrics.total_assets).scaleb(-self.asset.decimals)
