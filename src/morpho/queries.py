from __future__ import annotations

VAULT_FIELDS_FRAGMENT: str = """
fragment DiscoveryVaultFields on Vault {
  address
  name
  symbol
  whitelisted
  creationTimestamp
  asset {
    address
    symbol
    name
    decimals
  }
  chain { id network }
  state {
    apy
    netApy
    totalAssets
    totalAssetsUsd
    fee
    rewards {
      asset { address }
      supplyApr
      yearlySupplyTokens
    }
  }
}
"""

VAULTS_QUERY: str = """
query DiscoverVaults(
  $first: Int
  $orderBy: VaultOrderBy
  $orderDirection: OrderDirection
  $where: VaultFilters
) {
  vaults(first: $first, orderBy: $orderBy, orderDirection: $orderDirection, where: $where) {
    items {
      ...DiscoveryVaultFields
    }
  }
}
""" + VAULT_FIELDS_FRAGMENT

VAULT_BY_ADDRESS_QUERY: str = """
query DiscoveryVaultByAddress($address: String!, $chainId: Int!) {
  vaultByAddress(address: $address, chainId: $chainId) {
    ...DiscoveryVaultFields
  }
}
""" + VAULT_FIELDS_FRAGMENT
