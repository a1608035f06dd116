from __future__ import annotations
import logging
from typing import Any, Iterable, List, Optional

from src.config import SETTINGS, Settings
from src.morpho.chains import is_valid_address
from src.morpho.errors import InvalidFilterError, MappingError
from src.morpho.filters import FilterOptions, apply_residual, build_filters, map_sort
from src.morpho.gql_client import MorphoGraphQLClient
from src.morpho.mapper import map_vault
from src.morpho.models import Vault

logger = logging.getLogger(__name__)


def map_vaults(records: Iterable[Any]) -> List[Vault]:
    """Map raw records, skipping (and logging) the ones that fail validation."""
    vaults: List[Vault] = []
    failures = 0
    total = 0
    for record in records:
        total += 1
        try:
            vaults.append(map_vault(record))
        except MappingError as exc:
            failures += 1
            logger.warning("Skipping malformed vault record: %s", exc)

    if total and failures == total:
        logger.warning("All %d vault records failed to map; returning no vaults", total)
    return vaults


class VaultPipeline:
    """FilterOptions -> query -> mapping -> residual filter, in server order."""

    def __init__(self, client: MorphoGraphQLClient, settings: Settings = SETTINGS) -> None:
        self._client = client
        self._settings = settings

    def _page_size(self, limit: Optional[int]) -> int:
        requested = limit if limit is not None else self._settings.default_limit
        return min(requested, self._settings.max_page_size)

    async def get_vaults(self, options: Optional[FilterOptions] = None) -> List[Vault]:
        options = options or FilterOptions()
        plan = build_filters(options)
        order_by, order_direction = map_sort(options)

        records = await self._client.fetch_vaults(
            where=plan.server_predicate,
            order_by=order_by,
            order_direction=order_direction,
            first=self._page_size(options.limit),
        )
        vaults = map_vaults(records)
        return apply_residual(vaults, plan.residual_predicate)

    async def get_vault(self, address: str, chain_id: int) -> Optional[Vault]:
        if not is_valid_address(address):
            raise InvalidFilterError(f"Invalid vault address: {address}")

        record = await self._client.fetch_vault_by_address(address, chain_id)
        if record is None:
            return None
        try:
            return map_vault(record)
        except MappingError as exc:
            logger.warning("Vault %s on chain %s has a malformed record: %s", address, chain_id, exc)
            return None
