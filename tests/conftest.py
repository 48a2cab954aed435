import pytest
from unittest.mock import MagicMock

from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3

# Well-known dev keys, never funded outside local chains
EOA_KEY = "0x0fad2ca996a24d116097c481c27a59652a3d3611dfed64d8f9bf86568b1f431d"
SPONSOR_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

COUNTER_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
CHAIN_ID = 1337
BASE_FEE = 10**9
TX_HASH = HexBytes(b"\x11" * 32)


@pytest.fixture
def eoa():
    return Account.from_key(EOA_KEY)


@pytest.fixture
def sponsor():
    return Account.from_key(SPONSOR_KEY)


@pytest.fixture
def nonces():
    """Per-address transaction counts served by the fake node."""
    return {}


@pytest.fixture
def balances():
    return {}


@pytest.fixture
def fake_w3(nonces, balances):
    w3 = MagicMock()
    w3.eth.chain_id = CHAIN_ID
    w3.eth.gas_price = BASE_FEE
    w3.eth.get_transaction_count.side_effect = lambda address, *args: nonces.get(address, 0)
    w3.eth.get_balance.side_effect = lambda address, *args: balances.get(address, 0)
    w3.eth.get_block.return_value = {"number": 42, "baseFeePerGas": BASE_FEE}
    w3.eth.get_code.return_value = HexBytes(b"")
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "blockNumber": 43,
        "gasUsed": 46_000,
        "transactionHash": TX_HASH,
        "contractAddress": None,
    }
    w3.to_wei.side_effect = Web3.to_wei
    w3.from_wei.side_effect = Web3.from_wei
    w3.is_connected.return_value = True
    return w3
