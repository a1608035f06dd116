from __future__ import annotations
import re
from typing import Dict, List, Union

from src.morpho.errors import InvalidFilterError, UnsupportedChainError

CHAIN_IDS: Dict[str, int] = {
    "ethereum": 1,
    "base": 8453,
    "arbitrum": 42161,
    "optimism": 10,
    "polygon": 137,
    "sepolia": 11155111,
}

SUPPORTED_CHAINS: Dict[int, str] = {chain_id: name for name, chain_id in CHAIN_IDS.items()}

# Canonical USDC / WETH / USDT deployments per chain id.
WELL_KNOWN_TOKENS: Dict[int, Dict[str, str]] = {
    1: {
        "USDC": "0xA0b86991c6218A36c1D19D4a2e9Eb0cE3606eB48",
        "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    },
    8453: {
        "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "WETH": "0x4200000000000000000000000000000000000006",
        "USDT": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
    },
    42161: {
        "USDC": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "WETH": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        "USDT": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
    },
    10: {
        "USDC": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        "WETH": "0x4200000000000000000000000000000000000006",
        "USDT": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
    },
    137: {
        "USDC": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
        "WETH": "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",
        "USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    },
    11155111: {
        "USDC": "0x94a9D9AC8a22534E3FaCa9F4e7F2E2cf85d5E4C8",
        "WETH": "0xC558DBdd856501FCd9aaF1E62eae57A9F0629a3c",
        "USDT": "0xaA8E23Fb1079EA71e0a56F48a2aA51851D8433D0",
    },
}

# Snapshot of known vaults used only when the API is unreachable.
# Not maintained: addresses here can be stale or no longer the best vault.
FALLBACK_VAULT_ADDRESSES: Dict[str, Dict[str, str]] = {
    "base": {
        "WETH": "0x27D8c7273fd3fcC6956a0B370cE5Fd4A7fc65c18",
        "USDC": "0xc0c5689e6f4D256E861F65465b691aeEcC0dEb12",
    },
}

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address: str) -> bool:
    """Return True for a 0x-prefixed 20-byte hex address."""
    return bool(_ADDRESS_RE.match(address))


def resolve_chain_id(chain: Union[str, int]) -> int:
    """Resolve a chain name (case-insensitive) or numeric id into a supported chain id."""
    if isinstance(chain, bool):
        raise UnsupportedChainError(f"Unsupported chain: {chain!r}")
    if isinstance(chain, int):
        if chain not in SUPPORTED_CHAINS:
            raise UnsupportedChainError(
                f"Unsupported chain id: {chain}. Supported chain ids: {get_supported_chain_ids()}"
            )
        return chain

    key = str(chain).strip().lower()
    if key.isdigit():
        return resolve_chain_id(int(key))
    if key not in CHAIN_IDS:
        raise UnsupportedChainError(
            f"Unsupported chain: {chain}. Supported chains: {', '.join(CHAIN_IDS)}"
        )
    return CHAIN_IDS[key]


def is_supported_chain(chain_id: int) -> bool:
    return chain_id in SUPPORTED_CHAINS


def get_supported_chain_ids() -> List[int]:
    return list(SUPPORTED_CHAINS)


def get_chain_name(chain_id: int) -> str:
    """Return the lowercase network name for a supported chain id."""
    return SUPPORTED_CHAINS[resolve_chain_id(chain_id)]


def get_token_address(symbol: str, chain: Union[str, int]) -> str:
    """Look up a well-known token address by symbol on a chain."""
    chain_id = resolve_chain_id(chain)
    tokens = WELL_KNOWN_TOKENS[chain_id]
    address = tokens.get(symbol.strip().upper())
    if address is None:
        raise InvalidFilterError(
            f"Unknown token {symbol!r} on chain {chain_id}. Known tokens: {', '.join(tokens)}"
        )
    return address
