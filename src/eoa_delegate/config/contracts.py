"""
Contract locations and compiler settings for the delegation walkthrough.

The Counter contract is the delegation target: once an EOA is designated,
calls to the EOA run this code against the EOA's own storage and balance.
"""

import os
from pathlib import Path

# Solidity version used to compile contracts/Counter.sol
SOLIDITY_VERSION = "0.8.24"

# Repository root holds contracts/
PROJECT_ROOT = Path(__file__).resolve().parents[3]
COUNTER_SOURCE_PATH = PROJECT_ROOT / "contracts" / "Counter.sol"
COUNTER_CONTRACT_NAME = "Counter"

# Gas settings for deployment
DEPLOYMENT_GAS_LIMIT = 500_000

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def get_counter_source_path() -> Path:
    """Return the Counter source path (COUNTER_SOURCE overrides)."""
    override = os.getenv("COUNTER_SOURCE")
    return Path(override) if override else COUNTER_SOURCE_PATH


def get_counter_address() -> str | None:
    """Return the deployed Counter address from COUNTER_ADDRESS, if set."""
    return os.getenv("COUNTER_ADDRESS") or None
