import pytest

from eoa_delegate.config.network import get_chain_config, get_chain_id, get_rpc_url
from eoa_delegate.helpers import web3_setup


def test_dev_defaults(monkeypatch):
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("CHAIN_ID", raising=False)
    monkeypatch.delenv("CHAIN", raising=False)
    assert get_rpc_url() == "http://localhost:8848"
    assert get_chain_id() == 1337


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RPC_URL", "http://node:8545")
    monkeypatch.setenv("CHAIN_ID", "0x7a69")
    assert get_rpc_url() == "http://node:8545"
    assert get_chain_id() == 31337


def test_chain_lookup_by_id():
    assert get_chain_config(31337)["name"] == "Anvil"
    with pytest.raises(ValueError):
        get_chain_config(999)


def test_web3_instance_is_cached_per_url(monkeypatch):
    monkeypatch.setattr(web3_setup, "_w3_instance", None)
    first = web3_setup.get_web3_instance("http://127.0.0.1:8848")
    assert web3_setup.get_web3_instance("http://127.0.0.1:8848") is first
    assert web3_setup.get_web3_instance("http://127.0.0.1:9999") is not first
