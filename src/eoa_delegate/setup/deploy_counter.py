"""
Deploy the Counter Contract
===========================

Compiles contracts/Counter.sol with py-solc-x and deploys it from the
deployer account. The deployed address is the delegation target for the
EOA.

Usage:
    python -m eoa_delegate deploy [--artifact build/Counter.json]

Environment Variables:
    - RPC_URL: node endpoint (default http://localhost:8848)
    - DEPLOYER_PRIVATE_KEY / PRIVATE_KEY: deployer key
"""

import json
import logging
from pathlib import Path
from typing import Any

from eth_account.signers.local import LocalAccount
from solcx import compile_source, install_solc
from solcx.exceptions import SolcNotInstalled
from web3 import Web3

from eoa_delegate.config.abis import COUNTER_ABI
from eoa_delegate.config.contracts import (
    COUNTER_CONTRACT_NAME,
    DEPLOYMENT_GAS_LIMIT,
    SOLIDITY_VERSION,
    get_counter_source_path,
)
from eoa_delegate.config.network import RECEIPT_TIMEOUT
from eoa_delegate.executor.eip7702_sender import (
    PreconditionError,
    TransactionError,
    submit_transaction,
    wait_for_inclusion,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Contract Compilation                                                        #
# --------------------------------------------------------------------------- #

def compile_counter(source_path: Path | None = None, solc_version: str = SOLIDITY_VERSION) -> dict[str, Any]:
    """Compile the Counter contract and return its abi and bytecode."""
    source_path = source_path or get_counter_source_path()
    if not source_path.exists():
        raise FileNotFoundError(f"Contract file not found: {source_path}")

    logger.info(f"Compiling {source_path} with solc {solc_version}")
    try:
        compiled = _compile(source_path.read_text(), solc_version)
    except SolcNotInstalled:
        logger.info(f"Installing solc {solc_version}")
        install_solc(solc_version)
        compiled = _compile(source_path.read_text(), solc_version)

    contract_data = compiled[f"<stdin>:{COUNTER_CONTRACT_NAME}"]
    return {
        'abi': contract_data['abi'],
        'bytecode': contract_data['bin'],
        'runtime_bytecode': contract_data['bin-runtime'],
    }


def _compile(source: str, solc_version: str) -> dict[str, Any]:
    return compile_source(
        source,
        output_values=['abi', 'bin', 'bin-runtime'],
        solc_version=solc_version,
        optimize=True,
        optimize_runs=200,
    )


def load_artifact(path: Path) -> dict[str, Any]:
    """
    Load a precompiled artifact.

    Accepts ``{"abi": [...], "bytecode": "0x..."}`` as well as forge output
    where bytecode is nested under ``{"bytecode": {"object": "0x..."}}``.
    """
    with open(path) as f:
        data = json.load(f)

    bytecode = data.get('bytecode')
    if isinstance(bytecode, dict):
        bytecode = bytecode.get('object')
    if not bytecode:
        raise ValueError(f"No bytecode in artifact {path}")

    return {'abi': data.get('abi') or COUNTER_ABI, 'bytecode': bytecode}


def save_artifact(contract_data: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(contract_data, f, indent=2)
    logger.info(f"Saved artifact to {path}")
    return path


# --------------------------------------------------------------------------- #
# Deployment                                                                  #
# --------------------------------------------------------------------------- #

def deploy_counter(
    w3: Web3,
    account: LocalAccount,
    contract_data: dict[str, Any],
    gas_limit: int = DEPLOYMENT_GAS_LIMIT,
    timeout: int = RECEIPT_TIMEOUT,
) -> str:
    """
    Deploy the Counter contract.

    Returns:
        Checksum address of the deployed contract

    Raises:
        PreconditionError: If the deployer cannot pay for deployment
        TransactionError: If the deployment is rejected or reverts
    """
    bytecode = contract_data['bytecode']
    if not bytecode.startswith('0x'):
        bytecode = '0x' + bytecode

    contract = w3.eth.contract(abi=contract_data['abi'], bytecode=bytecode)

    latest_block = w3.eth.get_block('latest')
    base_fee = latest_block.get('baseFeePerGas', w3.eth.gas_price)
    priority_fee = w3.to_wei(1, 'gwei')
    max_fee = base_fee * 2 + priority_fee

    balance = w3.eth.get_balance(account.address)
    if balance < gas_limit * max_fee:
        raise PreconditionError(
            f"Insufficient deployer balance: {w3.from_wei(balance, 'ether')} ETH at {account.address}"
        )

    tx = contract.constructor().build_transaction({
        'from': account.address,
        'nonce': w3.eth.get_transaction_count(account.address),
        'gas': gas_limit,
        'maxFeePerGas': max_fee,
        'maxPriorityFeePerGas': priority_fee,
        'chainId': w3.eth.chain_id,
    })

    tx_hash = submit_transaction(w3, account, tx)
    receipt = wait_for_inclusion(w3, tx_hash, timeout)

    contract_address = receipt['contractAddress']
    if not contract_address:
        raise TransactionError(f"Deployment {tx_hash} produced no contract address")

    contract_address = Web3.to_checksum_address(contract_address)
    logger.info(f"Counter deployed at {contract_address} (gas used {receipt['gasUsed']:,})")
    return contract_address
