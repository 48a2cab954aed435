"""
Counter contract client.

Wraps the Counter ABI so the same calls work against the deployed contract
and against an EOA that delegates to it. Through a delegated EOA, reads and
writes hit the EOA's own storage and balance, not the contract's.
"""

from __future__ import annotations

import logging
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import Web3Exception

from eoa_delegate.config.abis import COUNTER_ABI
from eoa_delegate.config.network import RECEIPT_TIMEOUT
from eoa_delegate.executor.eip7702_sender import TransactionError, submit_transaction, wait_for_inclusion

logger = logging.getLogger(__name__)

MAX_UINT256 = 2**256 - 1


class CounterClient:
    """Counter calls bound to one address (contract or delegated EOA)."""

    def __init__(self, w3: Web3, address: str, timeout: int = RECEIPT_TIMEOUT):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.timeout = timeout
        self.contract = w3.eth.contract(address=self.address, abi=COUNTER_ABI)

    # ------------------------------------------------------------------ #
    # Views                                                              #
    # ------------------------------------------------------------------ #

    def number(self) -> int:
        return int(self.contract.functions.number().call())

    def say_hello(self) -> str:
        return self.contract.functions.sayHello().call()

    def balance(self) -> int:
        """Native balance held at the bound address (wei)."""
        return int(self.w3.eth.get_balance(self.address))

    # ------------------------------------------------------------------ #
    # State-changing calls                                               #
    # ------------------------------------------------------------------ #

    def _transact(self, account: LocalAccount, fn: Any, label: str) -> Any:
        try:
            tx = fn.build_transaction({
                'from': account.address,
                'nonce': self.w3.eth.get_transaction_count(account.address),
                'chainId': self.w3.eth.chain_id,
            })
        except (Web3Exception, ValueError) as e:
            # Reverts surface here during gas estimation
            raise TransactionError(f"{label} on {self.address} rejected: {e}") from e

        tx_hash = submit_transaction(self.w3, account, tx)
        receipt = wait_for_inclusion(self.w3, tx_hash, self.timeout)
        logger.info(f"{label} on {self.address} included in block {receipt['blockNumber']} ({tx_hash})")
        return receipt

    def set_number(self, account: LocalAccount, value: int) -> Any:
        """Set ``number`` to ``value`` (0 <= value < 2**256)."""
        if not 0 <= value <= MAX_UINT256:
            raise ValueError(f"value out of uint256 range: {value}")
        return self._transact(account, self.contract.functions.setNumber(value), f"setNumber({value})")

    def increment(self, account: LocalAccount) -> Any:
        return self._transact(account, self.contract.functions.increment(), "increment()")

    def transfer_to_sender(self, account: LocalAccount, amount: int) -> Any:
        """
        Ask the bound address to send ``amount`` wei to ``account``.

        Raises:
            TransactionError: If ``amount`` exceeds the bound address's balance
        """
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        return self._transact(
            account,
            self.contract.functions.transferToSender(amount),
            f"transferToSender({amount})",
        )
