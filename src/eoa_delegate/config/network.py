"""
Network configuration for the EIP-7702 delegation walkthrough.

Contains the RPC endpoint, chain parameters and gas defaults used when
talking to the local development node. Every value can be overridden with
an environment variable so the same tooling works against any node that
has EIP-7702 activated.
"""

import os
from typing import Any


# =============================================================================
# CHAIN CONFIGURATIONS
# =============================================================================

CHAINS: dict[str, dict[str, Any]] = {
    "dev": {
        "chain_id": 1337,
        "name": "Local geth --dev",
        "currency": "ETH",
        "block_time": 1,
        "rpc_urls": [
            "http://localhost:8848",
            "http://127.0.0.1:8848",
        ],
    },
    "anvil": {
        "chain_id": 31337,
        "name": "Anvil",
        "currency": "ETH",
        "block_time": 1,
        "rpc_urls": [
            "http://127.0.0.1:8545",
        ],
    },
    "sepolia": {
        "chain_id": 11155111,
        "name": "Sepolia",
        "currency": "ETH",
        "block_time": 12,
        "rpc_urls": [
            "https://ethereum-sepolia-rpc.publicnode.com",
        ],
    },
}

# Chain ID to name mapping
CHAIN_ID_TO_NAME: dict[int, str] = {
    config["chain_id"]: name for name, config in CHAINS.items()
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_chain_config(chain: str | int | None = None) -> dict[str, Any]:
    """Get configuration for a specific chain.

    Args:
        chain: Chain name (e.g., 'dev', 'anvil') or chain ID.
               If None, uses CHAIN environment variable or defaults to 'dev'.

    Returns:
        Chain configuration dictionary.

    Raises:
        ValueError: If chain is not supported.
    """
    if chain is None:
        chain = os.getenv("CHAIN", "dev").lower()

    if isinstance(chain, int):
        name = CHAIN_ID_TO_NAME.get(chain)
        if name is None:
            raise ValueError(f"Unsupported chain ID: {chain}")
        chain = name

    chain = chain.lower()
    if chain not in CHAINS:
        raise ValueError(f"Unsupported chain: {chain}. Supported: {list(CHAINS.keys())}")

    return CHAINS[chain]


def get_rpc_url(chain: str | int | None = None) -> str:
    """Get the primary RPC URL for a chain.

    Uses RPC_URL environment variable if set, otherwise returns first default.
    """
    env_rpc = os.getenv("RPC_URL")
    if env_rpc:
        return env_rpc

    config = get_chain_config(chain)
    return config["rpc_urls"][0]


def get_chain_id(chain: str | None = None) -> int:
    """Get the expected chain ID.

    CHAIN_ID in the environment wins over the named chain's default.
    """
    env_chain_id = os.getenv("CHAIN_ID")
    if env_chain_id:
        return int(env_chain_id, 0)
    config = get_chain_config(chain)
    return config["chain_id"]


# =============================================================================
# DEFAULTS (local dev node)
# =============================================================================

DEFAULT_RPC_URL: str = CHAINS["dev"]["rpc_urls"][0]
CHAIN_ID: int = CHAINS["dev"]["chain_id"]
CHAIN_NAME: str = CHAINS["dev"]["name"]

# Funding transfer defaults: legacy EIP-155 transfer of 1 ETH at 1 gwei
FUND_AMOUNT_ETH: str = "1"
FUND_GAS_LIMIT: int = 21_000
FUND_GAS_PRICE_GWEI: int = 1

# Type-4 transaction defaults
DELEGATION_GAS_LIMIT: int = 200_000
PRIORITY_FEE_GWEI: int = 2

# Network timeouts (seconds)
RPC_TIMEOUT_SECONDS: int = 30
RECEIPT_TIMEOUT: int = 120  # wait for inclusion
