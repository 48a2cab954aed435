"""
EIP-7702 Transaction Sender.
Handles signing, broadcasting and confirmation of delegation designations.

The flow is linear: sign the authorization with the EOA key, wrap it in a
type 4 transaction sent by the EOA or a sponsor, submit it, wait for the
receipt, then read the EOA's code back to confirm the designation. Node
errors are surfaced as DelegationError and never retried.
"""

import logging
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import Web3Exception

from eoa_delegate.config.contracts import ZERO_ADDRESS
from eoa_delegate.config.network import RECEIPT_TIMEOUT
from eoa_delegate.helpers.delegation import authorization_digest, get_delegation
from eoa_delegate.helpers.eip7702_builder import EIP7702TransactionBuilder

logger = logging.getLogger(__name__)


class TransactionError(Exception):
    """A transaction was rejected, timed out or reverted"""
    pass


class DelegationError(TransactionError):
    """Submission or confirmation of a delegation designation failed"""
    pass


class PreconditionError(ValueError):
    """A local check refused to send: the account cannot pay or the node lacks a feature"""
    pass


@dataclass
class DelegationResult:
    eoa: str
    target: str
    tx_hash: str
    block_number: int
    gas_used: int
    delegated_to: str | None

    @property
    def confirmed(self) -> bool:
        if self.delegated_to is None:
            return self.target == ZERO_ADDRESS
        return self.delegated_to == self.target


def sign_authorization(account: LocalAccount, contract_address: str, chain_id: int, nonce: int) -> dict[str, Any]:
    """
    Sign an EIP-7702 authorization tuple directly over its digest.
    Payload: 0x05 || RLP([chain_id, address, nonce])

    Produces the same signature as ``account.sign_authorization``; kept for
    nodes and tools that take the raw tuple fields.
    """
    digest = authorization_digest(chain_id, contract_address, nonce)
    signed = Account.unsafe_sign_hash(digest, account.key)

    # EIP-7702 uses yParity (0 or 1)
    y_parity = signed.v - 27 if signed.v >= 27 else signed.v

    return {
        'chainId': chain_id,
        'address': Web3.to_checksum_address(contract_address),
        'nonce': nonce,
        'yParity': y_parity,
        'r': signed.r,
        's': signed.s,
    }


def authorization_to_json(auth: dict[str, Any]) -> dict[str, Any]:
    """Render an authorization with hex quantities, as JSON-RPC expects."""
    return {
        'chainId': hex(auth['chainId']),
        'address': auth['address'],
        'nonce': hex(auth['nonce']),
        'yParity': hex(auth['yParity']),
        'r': hex(auth['r']),
        's': hex(auth['s']),
    }


def submit_transaction(w3: Web3, signer: LocalAccount, tx: dict[str, Any]) -> str:
    """
    Sign ``tx`` with ``signer`` and broadcast it.

    Returns:
        Transaction hash as 0x-prefixed hex string

    Raises:
        TransactionError: If signing or submission is rejected
    """
    try:
        signed_tx = signer.sign_transaction(tx)
        logger.debug(f"Raw transaction: {Web3.to_hex(signed_tx.raw_transaction)}")
        tx_hash = w3.eth.send_raw_transaction(signed_tx.raw_transaction)
    except (Web3Exception, ValueError, TypeError, OSError) as e:
        raise TransactionError(f"Submission failed for sender {signer.address}: {e}") from e

    tx_hash_hex = Web3.to_hex(tx_hash)
    logger.info(f"Submitted transaction {tx_hash_hex} from {signer.address}")
    return tx_hash_hex


def wait_for_inclusion(w3: Web3, tx_hash: str, timeout: int = RECEIPT_TIMEOUT) -> Any:
    """
    Block until ``tx_hash`` is included.

    Raises:
        TransactionError: If the receipt does not arrive or reports status 0
    """
    try:
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    except (Web3Exception, ValueError, OSError) as e:
        raise TransactionError(f"No receipt for {tx_hash}: {e}") from e

    if receipt['status'] != 1:
        raise TransactionError(f"Transaction {tx_hash} was included but reverted (block {receipt['blockNumber']})")

    logger.debug(f"Transaction {tx_hash} included in block {receipt['blockNumber']}, gas used {receipt['gasUsed']:,}")
    return receipt


def confirm_delegation(w3: Web3, eoa: str, target: str) -> bool:
    """True when ``eoa``'s code designates ``target`` (empty code for the zero address)."""
    current = get_delegation(w3, eoa)
    target = Web3.to_checksum_address(target)
    if target == ZERO_ADDRESS:
        return current is None
    return current == target


def send_delegation(
    w3: Web3,
    eoa: LocalAccount,
    target_address: str,
    sponsor: LocalAccount | None = None,
    data: str | bytes = b"",
    gas_params: dict[str, Any] | None = None,
) -> str:
    """
    Build, sign and submit one EIP-7702 designation transaction.

    Args:
        w3: Web3 instance
        eoa: Account whose code is designated (signs the authorization)
        target_address: Contract to delegate to
        sponsor: Optional distinct sender paying for gas
        data: Optional calldata run against the EOA after designation
        gas_params: Optional gas fields overriding the latest-block defaults

    Returns:
        Transaction hash as hex string
    """
    builder = EIP7702TransactionBuilder(w3, target_address).with_call(data)
    try:
        tx = builder.build_transaction(eoa, sponsor, gas_params)
    except (Web3Exception, ValueError, OSError) as e:
        raise DelegationError(f"Could not build delegation transaction: {e}") from e
    logger.debug(f"Authorization: {authorization_to_json(tx['authorizationList'][0])}")
    try:
        return submit_transaction(w3, sponsor or eoa, tx)
    except TransactionError as e:
        raise DelegationError(str(e)) from e


def apply_delegation(
    w3: Web3,
    eoa: LocalAccount,
    target_address: str,
    sponsor: LocalAccount | None = None,
    data: str | bytes = b"",
    gas_params: dict[str, Any] | None = None,
    timeout: int = RECEIPT_TIMEOUT,
) -> DelegationResult:
    """
    Designate ``eoa`` to ``target_address`` and wait for it to take effect.

    A stale authorization nonce does not fail the transaction on chain (the
    node skips the tuple), so the EOA's code is read back and the outcome is
    reported in ``DelegationResult.confirmed``.
    """
    target = Web3.to_checksum_address(target_address)
    tx_hash = send_delegation(w3, eoa, target, sponsor, data, gas_params)
    try:
        receipt = wait_for_inclusion(w3, tx_hash, timeout)
    except TransactionError as e:
        raise DelegationError(str(e)) from e
    delegated_to = get_delegation(w3, eoa.address)

    result = DelegationResult(
        eoa=eoa.address,
        target=target,
        tx_hash=tx_hash,
        block_number=receipt['blockNumber'],
        gas_used=receipt['gasUsed'],
        delegated_to=delegated_to,
    )
    if result.confirmed:
        logger.info(f"EOA {eoa.address} now delegates to {delegated_to}")
    else:
        logger.warning(
            f"Transaction {tx_hash} included but EOA {eoa.address} code points to {delegated_to} "
            f"(expected {target}); the authorization was likely skipped"
        )
    return result


def revoke_delegation(
    w3: Web3,
    eoa: LocalAccount,
    sponsor: LocalAccount | None = None,
    timeout: int = RECEIPT_TIMEOUT,
) -> DelegationResult:
    """Clear ``eoa``'s delegation by designating the zero address."""
    return apply_delegation(w3, eoa, ZERO_ADDRESS, sponsor=sponsor, timeout=timeout)
