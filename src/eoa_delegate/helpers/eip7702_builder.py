"""
EIP-7702 Transaction Builder
============================

This module builds the set-code (type 4) transaction that designates an
EOA's code to a target contract. The authorization tuple is always signed by
the EOA; the transaction itself may be sent by the EOA or by a distinct
sponsor account that pays for gas.
"""

from typing import Any
from web3 import Web3
from web3.exceptions import Web3Exception
from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes
import logging

from eoa_delegate.config.network import DELEGATION_GAS_LIMIT, PRIORITY_FEE_GWEI
from eoa_delegate.helpers.delegation import SET_CODE_TX_TYPE

logger = logging.getLogger(__name__)


class EIP7702TransactionBuilder:
    """Builder for EIP-7702 delegation designation transactions."""

    def __init__(self, w3: Web3, target_address: str):
        """
        Initialize the EIP-7702 transaction builder.

        Args:
            w3: Web3 instance
            target_address: Contract whose code the EOA will delegate to
                (the zero address revokes an existing delegation)
        """
        self.w3 = w3
        self.target_address = Web3.to_checksum_address(target_address)
        self.data: bytes = b""

    def with_call(self, data: str | bytes) -> "EIP7702TransactionBuilder":
        """
        Set calldata executed against the EOA in the same transaction.

        The delegation is applied before execution, so the call already runs
        the target's code.

        Args:
            data: Calldata as hex string or bytes
        """
        if isinstance(data, str):
            data = to_bytes(hexstr=data)
        self.data = bytes(data)
        return self

    def build_authorization(
        self,
        account: LocalAccount,
        nonce: int | None = None,
        chain_id: int | None = None,
    ) -> dict[str, Any]:
        """
        Build and sign the EIP-7702 authorization.

        Args:
            account: EOA that delegates its code (must hold the key)
            nonce: Authorization nonce (if None, defaults to current account nonce)
                   Note: When auth signer == tx signer, use account.nonce + 1
            chain_id: Chain the authorization is valid on (defaults to the node's)

        Returns:
            Signed authorization dictionary
        """
        if nonce is None:
            nonce = self.w3.eth.get_transaction_count(account.address)
        if chain_id is None:
            chain_id = self.w3.eth.chain_id

        auth = {
            "chainId": chain_id,
            "address": self.target_address,
            "nonce": nonce,
        }

        signed_auth = account.sign_authorization(auth)
        logger.debug(
            f"Created authorization for {account.address} -> {self.target_address} "
            f"(chain {chain_id}, nonce {nonce})"
        )

        return {
            'chainId': signed_auth.chain_id,
            'address': Web3.to_checksum_address(signed_auth.address),
            'nonce': signed_auth.nonce,
            'yParity': signed_auth.y_parity,
            'r': signed_auth.r,
            's': signed_auth.s,
        }

    def default_gas_params(self) -> dict[str, int]:
        """EIP-1559 fee fields derived from the latest block."""
        latest_block = self.w3.eth.get_block('latest')
        base_fee = latest_block.get('baseFeePerGas', self.w3.eth.gas_price)
        priority_fee = self.w3.to_wei(PRIORITY_FEE_GWEI, 'gwei')

        return {
            'gas': DELEGATION_GAS_LIMIT,
            'maxFeePerGas': base_fee * 2 + priority_fee,
            'maxPriorityFeePerGas': priority_fee,
        }

    def build_transaction(
        self,
        account: LocalAccount,
        sponsor: LocalAccount | None = None,
        gas_params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Build the complete EIP-7702 transaction.

        Args:
            account: EOA signing the authorization; the transaction targets it
            sponsor: Account sending (and paying for) the transaction.
                Defaults to the EOA itself.
            gas_params: Optional gas parameters (gas, maxFeePerGas, maxPriorityFeePerGas)

        Returns:
            Complete transaction dictionary ready for signing by the sender
        """
        sender = sponsor or account
        chain_id = self.w3.eth.chain_id
        nonce = self.w3.eth.get_transaction_count(sender.address)

        if sender.address == account.address:
            # The sender's nonce is bumped before the authorization list is
            # processed, so a self-signed authorization must use nonce + 1
            auth_nonce = nonce + 1
        else:
            auth_nonce = self.w3.eth.get_transaction_count(account.address)

        signed_auth = self.build_authorization(account, auth_nonce, chain_id)

        if gas_params is None:
            gas_params = self.default_gas_params()

        tx = {
            'type': SET_CODE_TX_TYPE,
            'chainId': chain_id,
            'nonce': nonce,
            'to': account.address,
            'value': 0,
            'data': Web3.to_hex(self.data),
            'authorizationList': [signed_auth],
            **gas_params
        }

        logger.info(
            f"Built EIP-7702 transaction: {account.address} -> {self.target_address} "
            f"(sender {sender.address}, tx nonce {nonce}, auth nonce {auth_nonce})"
        )

        return tx

    def estimate_gas(self, account: LocalAccount, sponsor: LocalAccount | None = None) -> int:
        """
        Estimate gas for the transaction.

        Args:
            account: EOA being delegated
            sponsor: Account that will send the transaction

        Returns:
            Estimated gas amount
        """
        tx = self.build_transaction(account, sponsor)
        tx['from'] = (sponsor or account).address
        # Remove gas fields for estimation
        tx.pop('gas', None)
        tx.pop('maxFeePerGas', None)
        tx.pop('maxPriorityFeePerGas', None)

        try:
            return self.w3.eth.estimate_gas(tx)
        except (Web3Exception, ValueError) as e:
            logger.warning(f"Gas estimation failed: {e}, using default")
            return DELEGATION_GAS_LIMIT
