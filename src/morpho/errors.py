from __future__ import annotations
from typing import Any, List, Optional


class VaultDiscoveryError(Exception):
    """Base class for every error raised by vault discovery."""


class MappingError(VaultDiscoveryError):
    """A raw vault record is missing an identity-critical field or is malformed."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class RemoteQueryError(VaultDiscoveryError, RuntimeError):
    """The Morpho API failed at transport level or answered with GraphQL errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []


class UnsupportedChainError(VaultDiscoveryError, ValueError):
    """A chain name or id is absent from the static chain table."""


class InvalidFilterError(VaultDiscoveryError, ValueError):
    """Filter options failed local validation; no request was sent."""
