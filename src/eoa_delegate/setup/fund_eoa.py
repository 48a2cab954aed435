#!/usr/bin/env python3
"""
Fund an EOA from the deployer account.

The default is a legacy EIP-155 transfer of 1 ETH at 1 gwei with a 21000 gas
limit, nonce taken from the latest block. EIP-1559 fees are available for
nodes that price by base fee.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from web3 import Web3
from web3.types import TxParams

from eoa_delegate.config.network import (
    FUND_AMOUNT_ETH,
    FUND_GAS_LIMIT,
    FUND_GAS_PRICE_GWEI,
    PRIORITY_FEE_GWEI,
    RECEIPT_TIMEOUT,
)
from eoa_delegate.executor.eip7702_sender import PreconditionError, submit_transaction, wait_for_inclusion

logger = logging.getLogger(__name__)

EIP1559_UNSUPPORTED = "RPC appears to not support EIP-1559 (no baseFeePerGas). Use legacy gas."


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_amount_eth(amount_str: str) -> Decimal:
    try:
        v = Decimal(str(amount_str))
        if v <= 0:
            raise ValueError
        return v
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid --amount: {amount_str}")


def _is_eip1559_supported(w3: Web3) -> bool:
    blk = w3.eth.get_block("latest")
    return "baseFeePerGas" in blk


@dataclass
class GasConfig:
    type: str  # "eip1559" or "legacy"
    gas_limit: int
    max_fee_gwei: Decimal | None = None
    prio_fee_gwei: Decimal | None = None
    gas_price_gwei: Decimal | None = None

    @classmethod
    def legacy_default(cls) -> "GasConfig":
        return cls(type="legacy", gas_limit=FUND_GAS_LIMIT, gas_price_gwei=Decimal(FUND_GAS_PRICE_GWEI))

    def as_tx_fields(self) -> dict[str, int]:
        if self.type == "eip1559":
            assert self.max_fee_gwei is not None and self.prio_fee_gwei is not None
            return {
                "maxFeePerGas": Web3.to_wei(self.max_fee_gwei, "gwei"),
                "maxPriorityFeePerGas": Web3.to_wei(self.prio_fee_gwei, "gwei"),
                "gas": int(self.gas_limit),
            }
        else:
            assert self.gas_price_gwei is not None
            return {
                "gasPrice": Web3.to_wei(self.gas_price_gwei, "gwei"),
                "gas": int(self.gas_limit),
            }

    def max_gas_cost_wei(self) -> int:
        fields = self.as_tx_fields()
        price = fields.get("maxFeePerGas", fields.get("gasPrice", 0))
        return int(price) * int(self.gas_limit)


def eip1559_gas_config(w3: Web3, gas_limit: int = FUND_GAS_LIMIT) -> GasConfig:
    """Fee caps derived from the latest base fee."""
    block = w3.eth.get_block("latest")
    if "baseFeePerGas" not in block:
        raise PreconditionError(EIP1559_UNSUPPORTED)
    base_fee = block["baseFeePerGas"]
    prio = Decimal(PRIORITY_FEE_GWEI)
    max_fee = Decimal(base_fee) / Decimal(10**9) * 2 + prio
    return GasConfig(type="eip1559", gas_limit=gas_limit, max_fee_gwei=max_fee, prio_fee_gwei=prio)


def build_transfer(
    w3: Web3,
    funder: LocalAccount,
    recipient: str,
    value_wei: int,
    gas: GasConfig,
) -> TxParams:
    """Native transfer from ``funder`` to ``recipient`` with an explicit nonce."""
    return {
        "to": to_checksum_address(recipient),
        "value": int(value_wei),
        "nonce": w3.eth.get_transaction_count(funder.address, "latest"),
        "chainId": w3.eth.chain_id,
        "data": b"",
        **gas.as_tx_fields(),
    }


def fund_account(
    w3: Web3,
    funder: LocalAccount,
    recipient: str,
    amount_eth: str = FUND_AMOUNT_ETH,
    gas: GasConfig | None = None,
    top_up: bool = False,
    timeout: int = RECEIPT_TIMEOUT,
) -> dict[str, Any]:
    """
    Send ``amount_eth`` from ``funder`` to ``recipient`` and wait for inclusion.

    Args:
        w3: Web3 instance
        funder: Deployer account paying value and gas
        recipient: EOA to fund
        amount_eth: Amount in ether units
        gas: Gas configuration (defaults to the legacy 1 gwei / 21000 transfer)
        top_up: Only send the shortfall to reach ``amount_eth``
        timeout: Seconds to wait for the receipt

    Returns:
        Summary with balances and transaction hash

    Raises:
        PreconditionError: If the funder cannot cover value + gas, or the node
            lacks EIP-1559 fields for an eip1559 gas config
        TransactionError: If submission fails or the transfer reverts
    """
    recipient = to_checksum_address(recipient)
    gas = gas or GasConfig.legacy_default()
    if gas.gas_limit < 21000:
        raise ValueError("gas-limit must be >= 21000 for native transfers")
    if gas.type == "eip1559" and not _is_eip1559_supported(w3):
        raise PreconditionError(EIP1559_UNSUPPORTED)

    target_wei = Web3.to_wei(parse_amount_eth(amount_eth), "ether")
    before = int(w3.eth.get_balance(recipient))
    value = max(0, target_wei - before) if top_up else target_wei

    summary: dict[str, Any] = {
        "chain_id": w3.eth.chain_id,
        "funder": funder.address,
        "recipient": recipient,
        "value_wei": value,
        "before_wei": before,
        "tx_hash": None,
        "status": "skipped",
        "gas": {
            "type": gas.type,
            "gas_limit": gas.gas_limit,
            "max_fee_gwei": str(gas.max_fee_gwei) if gas.max_fee_gwei is not None else None,
            "priority_fee_gwei": str(gas.prio_fee_gwei) if gas.prio_fee_gwei is not None else None,
            "gas_price_gwei": str(gas.gas_price_gwei) if gas.gas_price_gwei is not None else None,
        },
        "generated_at": _utc_now_iso(),
    }
    if value == 0:
        logger.info(f"{recipient} already holds {Web3.from_wei(before, 'ether')} ETH; nothing to send")
        summary["after_wei"] = before
        return summary

    funder_bal = int(w3.eth.get_balance(funder.address))
    needed = value + gas.max_gas_cost_wei()
    if funder_bal < needed:
        raise PreconditionError(
            f"Insufficient funder balance: {funder.address} has {funder_bal} wei, needs {needed} wei for value + gas"
        )

    tx = build_transfer(w3, funder, recipient, value, gas)
    logger.debug(f"Funding tx: {tx}")
    tx_hash = submit_transaction(w3, funder, tx)
    receipt = wait_for_inclusion(w3, tx_hash, timeout)

    summary.update(
        tx_hash=tx_hash,
        status="success",
        block_number=receipt["blockNumber"],
        after_wei=int(w3.eth.get_balance(recipient)),
    )
    logger.info(f"Funded {recipient} with {Web3.from_wei(value, 'ether')} ETH ({tx_hash})")
    return summary
