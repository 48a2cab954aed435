"""
Configuration package for the EIP-7702 delegation walkthrough.
"""

from eoa_delegate.config.network import (
    DEFAULT_RPC_URL,
    CHAIN_ID,
    CHAIN_NAME,
    CHAINS,
    get_chain_config,
    get_chain_id,
    get_rpc_url,
)

from eoa_delegate.config.contracts import (
    SOLIDITY_VERSION,
    COUNTER_SOURCE_PATH,
    COUNTER_CONTRACT_NAME,
    ZERO_ADDRESS,
    get_counter_source_path,
    get_counter_address,
)

from eoa_delegate.config.abis import COUNTER_ABI

__all__ = [
    # Network
    'DEFAULT_RPC_URL',
    'CHAIN_ID',
    'CHAIN_NAME',
    'CHAINS',
    'get_chain_config',
    'get_chain_id',
    'get_rpc_url',

    # Contracts
    'SOLIDITY_VERSION',
    'COUNTER_SOURCE_PATH',
    'COUNTER_CONTRACT_NAME',
    'ZERO_ADDRESS',
    'get_counter_source_path',
    'get_counter_address',

    # ABIs
    'COUNTER_ABI',
]
