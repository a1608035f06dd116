from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from src.morpho.errors import RemoteQueryError
from src.morpho.queries import VAULT_BY_ADDRESS_QUERY, VAULTS_QUERY

logger = logging.getLogger(__name__)

NOT_FOUND_CODE = "NOT_FOUND"
RETRYABLE_STATUS_CODES = frozenset({429})


def _error_messages(errors: List[Any]) -> str:
    messages = []
    for error in errors:
        if isinstance(error, dict):
            messages.append(str(error.get("message", error)))
        else:
            messages.append(str(error))
    return "; ".join(messages)


def _is_transient(exc: BaseException) -> bool:
    """Transport failures, 5xx and 429 are worth another attempt; other 4xx and bad JSON are not."""
    if not isinstance(exc, RemoteQueryError):
        return False
    if exc.status_code is not None:
        return exc.status_code >= 500 or exc.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc.__cause__, httpx.TransportError)


def _is_not_found(errors: List[Any]) -> bool:
    """True when every GraphQL error carries the NOT_FOUND extension code."""
    if not errors:
        return False
    for error in errors:
        if not isinstance(error, dict):
            return False
        extensions = error.get("extensions") or {}
        if extensions.get("code") != NOT_FOUND_CODE:
            return False
    return True


class MorphoGraphQLClient:
    """
    Async GraphQL client for the Morpho API.

    Holds only immutable configuration; each call opens its own httpx client,
    so one instance can serve concurrent callers. Calls are never retried here.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def _post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": query, "variables": variables}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.post(self._base_url, json=payload)
                response.raise_for_status()
                data: Dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteQueryError(
                f"Morpho API returned HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteQueryError(f"Morpho API request failed: {exc!r}") from exc
        except ValueError as exc:
            raise RemoteQueryError(f"Morpho API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise RemoteQueryError(f"Unexpected GraphQL response: {data!r}")
        return data

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GraphQL query and return the `data` payload as a dict."""
        data = await self._post(query, variables or {})

        if data.get("errors"):
            raise RemoteQueryError(f"GraphQL errors: {_error_messages(data['errors'])}", errors=data["errors"])
        if not isinstance(data.get("data"), dict):
            raise RemoteQueryError(f"Unexpected GraphQL response: {data}")

        return data["data"]

    async def fetch_vaults(
        self,
        where: Optional[Dict[str, Any]],
        order_by: str,
        order_direction: str,
        first: int,
    ) -> List[Any]:
        """Run the `vaults` query and return the raw items untouched."""
        variables: Dict[str, Any] = {
            "first": first,
            "orderBy": order_by,
            "orderDirection": order_direction,
        }
        if where is not None:
            variables["where"] = where

        logger.debug("Fetching vaults: %s", variables)
        result = await self.execute(query=VAULTS_QUERY, variables=variables)

        vaults = result.get("vaults") or {}
        items = vaults.get("items") if isinstance(vaults, dict) else None
        if not isinstance(items, list):
            raise RemoteQueryError(f"Unexpected vaults payload: {vaults!r}")
        return items

    async def fetch_vault_by_address(self, address: str, chain_id: int) -> Optional[Any]:
        """Return the raw vault record, or None when the API reports it does not exist."""
        variables = {"address": address, "chainId": chain_id}
        data = await self._post(VAULT_BY_ADDRESS_QUERY, variables)

        errors = data.get("errors")
        if errors:
            if _is_not_found(errors):
                return None
            raise RemoteQueryError(f"GraphQL errors: {_error_messages(errors)}", errors=errors)
        if not isinstance(data.get("data"), dict):
            raise RemoteQueryError(f"Unexpected GraphQL response: {data}")

        return data["data"].get("vaultByAddress")


class RetryingMorphoGraphQLClient(MorphoGraphQLClient):
    """
    Opt-in variant that retries transport failures, 5xx and 429 responses with
    exponential backoff. Other 4xx, unreadable bodies and GraphQL-level errors
    are deterministic and are raised on the first attempt.
    """

    @retry(
        wait=wait_exponential(min=1, max=10),
        stop=stop_after_attempt(5),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        return await super()._post(query, variables)
