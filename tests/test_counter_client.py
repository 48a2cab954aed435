from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from eoa_delegate.config.abis import COUNTER_ABI
from eoa_delegate.executor.eip7702_sender import TransactionError
from eoa_delegate.helpers.counter_client import MAX_UINT256, CounterClient


@pytest.fixture
def signer(sponsor):
    account = MagicMock()
    account.address = sponsor.address
    account.sign_transaction.return_value.raw_transaction = HexBytes(b"\x02\xc0")
    return account


@pytest.fixture
def client(fake_w3, eoa):
    return CounterClient(fake_w3, eoa.address.lower())


def test_binds_abi_to_checksum_address(fake_w3, eoa, client):
    assert client.address == eoa.address
    fake_w3.eth.contract.assert_called_once_with(address=eoa.address, abi=COUNTER_ABI)


def test_number_and_hello(fake_w3, client):
    functions = fake_w3.eth.contract.return_value.functions
    functions.number.return_value.call.return_value = 3
    functions.sayHello.return_value.call.return_value = "Hello from Counter"

    assert client.number() == 3
    assert client.say_hello() == "Hello from Counter"


def test_balance_reads_bound_address(balances, eoa, client):
    balances[eoa.address] = 12345
    assert client.balance() == 12345


def test_increment_builds_and_waits(fake_w3, nonces, signer, client):
    nonces[signer.address] = 9
    fn = fake_w3.eth.contract.return_value.functions.increment.return_value

    receipt = client.increment(signer)

    assert receipt["status"] == 1
    fn.build_transaction.assert_called_once_with({
        "from": signer.address,
        "nonce": 9,
        "chainId": 1337,
    })
    signer.sign_transaction.assert_called_once_with(fn.build_transaction.return_value)
    fake_w3.eth.wait_for_transaction_receipt.assert_called_once()


@pytest.mark.parametrize("value", [-1, MAX_UINT256 + 1])
def test_set_number_rejects_out_of_range(signer, client, value):
    with pytest.raises(ValueError):
        client.set_number(signer, value)


def test_set_number_accepts_max(fake_w3, signer, client):
    client.set_number(signer, MAX_UINT256)
    fake_w3.eth.contract.return_value.functions.setNumber.assert_called_once_with(MAX_UINT256)


def test_transfer_revert_raises_transaction_error(fake_w3, signer, client):
    fn = fake_w3.eth.contract.return_value.functions.transferToSender.return_value
    fn.build_transaction.side_effect = ContractLogicError("execution reverted: Insufficient balance")

    with pytest.raises(TransactionError, match="Insufficient balance"):
        client.transfer_to_sender(signer, 10**30)
    fake_w3.eth.send_raw_transaction.assert_not_called()


def test_transfer_rejects_negative_amount(signer, client):
    with pytest.raises(ValueError):
        client.transfer_to_sender(signer, -5)
