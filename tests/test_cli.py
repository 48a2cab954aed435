import logging

import pytest

from eoa_delegate.executor.eip7702_sender import DelegationResult
from eoa_delegate.setup import cli

from conftest import COUNTER_ADDRESS, EOA_KEY, SPONSOR_KEY

KEYS = ["--eoa-key", EOA_KEY, "--deployer-key", SPONSOR_KEY]


@pytest.fixture(autouse=True)
def reset_cli_logger():
    yield
    logger = logging.getLogger("eoa_delegate")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)


@pytest.fixture
def node(monkeypatch, fake_w3):
    monkeypatch.setattr(cli, "get_connected_web3", lambda rpc_url=None: fake_w3)
    return fake_w3


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_connection_error_exits_nonzero(monkeypatch, capsys):
    def unreachable(rpc_url=None):
        raise ConnectionError(f"Cannot connect to {rpc_url}")

    monkeypatch.setattr(cli, "get_connected_web3", unreachable)

    assert cli.main(["--no-log-file", "--rpc-url", "http://127.0.0.1:1", "status"]) == 1
    assert "Cannot connect to http://127.0.0.1:1" in capsys.readouterr().err


def test_counter_number_reads_address(node, capsys):
    node.eth.contract.return_value.functions.number.return_value.call.return_value = 7

    assert cli.main(["--no-log-file", "counter", "number", "--address", COUNTER_ADDRESS]) == 0
    assert capsys.readouterr().out.strip() == "7"


def test_set_number_requires_value(node, capsys):
    assert cli.main(["--no-log-file", "counter", "set-number", "--address", COUNTER_ADDRESS, *KEYS]) == 1
    assert "--value" in capsys.readouterr().err


def _result(eoa, delegated_to):
    return DelegationResult(
        eoa=eoa.address, target=COUNTER_ADDRESS, tx_hash="0x" + "11" * 32,
        block_number=43, gas_used=46_000, delegated_to=delegated_to,
    )


def test_delegate_uses_deployer_as_sponsor(node, monkeypatch, eoa, sponsor):
    calls = {}

    def fake_apply(w3, account, target, sponsor=None, timeout=None):
        calls.update(eoa=account.address, target=target, sponsor=sponsor.address)
        return _result(account, COUNTER_ADDRESS)

    monkeypatch.setattr(cli, "apply_delegation", fake_apply)

    assert cli.main(["--no-log-file", "delegate", "--target", COUNTER_ADDRESS, *KEYS]) == 0
    assert calls == {"eoa": eoa.address, "target": COUNTER_ADDRESS, "sponsor": sponsor.address}


def test_delegate_self_sponsored_and_unconfirmed(node, monkeypatch, eoa):
    seen = {}

    def fake_apply(w3, account, target, sponsor=None, timeout=None):
        seen["sponsor"] = sponsor
        return _result(account, None)

    monkeypatch.setattr(cli, "apply_delegation", fake_apply)

    assert cli.main(["--no-log-file", "delegate", "--target", COUNTER_ADDRESS, "--sponsor", "eoa", *KEYS]) == 1
    assert seen["sponsor"] is None


def test_delegate_without_target(node, monkeypatch, capsys):
    monkeypatch.delenv("COUNTER_ADDRESS", raising=False)
    assert cli.main(["--no-log-file", "delegate", *KEYS]) == 1
    assert "target" in capsys.readouterr().err


# --------------------------------------------------------------------------- #
# Refused preconditions exit 2                                                #
# --------------------------------------------------------------------------- #

def test_fund_unfunded_deployer_exits_2(node, capsys):
    assert cli.main(["--no-log-file", "fund", "--deployer-key", SPONSOR_KEY, "--to", COUNTER_ADDRESS]) == 2
    assert "Insufficient funder balance" in capsys.readouterr().err
    node.eth.send_raw_transaction.assert_not_called()


def test_fund_eip1559_on_legacy_node_exits_2(node, capsys):
    node.eth.get_block.return_value = {"number": 1}
    assert cli.main(["--no-log-file", "fund", "--eip1559", "--deployer-key", SPONSOR_KEY, "--to", COUNTER_ADDRESS]) == 2
    assert "EIP-1559" in capsys.readouterr().err


def test_deploy_unfunded_deployer_exits_2(node, monkeypatch, capsys):
    monkeypatch.setattr(cli, "compile_counter", lambda: {"abi": [], "bytecode": "0x6080"})
    assert cli.main(["--no-log-file", "deploy", "--deployer-key", SPONSOR_KEY]) == 2
    assert "Insufficient deployer balance" in capsys.readouterr().err


def test_node_failure_still_exits_1(node, balances, sponsor, capsys):
    balances[sponsor.address] = 10**19
    node.eth.send_raw_transaction.side_effect = ValueError("nonce too low")
    assert cli.main(["--no-log-file", "fund", "--deployer-key", SPONSOR_KEY, "--to", COUNTER_ADDRESS]) == 1


# --------------------------------------------------------------------------- #
# demo                                                                        #
# --------------------------------------------------------------------------- #

class FakeCounter:
    """Counter bound to an address; each increment adds ``step``."""

    step = 1
    instances = []

    def __init__(self, w3, address, timeout=None):
        self.address = address
        self.count = 0
        self.senders = []
        FakeCounter.instances.append(self)

    def number(self):
        return self.count

    def increment(self, account):
        self.senders.append(account.address)
        self.count += self.step


@pytest.fixture
def demo_env(node, monkeypatch):
    monkeypatch.delenv("EOA_PRIVATE_KEY", raising=False)
    monkeypatch.setattr(FakeCounter, "instances", [])
    monkeypatch.setattr(FakeCounter, "step", 1)
    calls = {"funded": [], "delegated": []}
    outcome = {"delegated_to": COUNTER_ADDRESS}

    def fake_fund(w3, funder, recipient, amount_eth=None, top_up=False, timeout=None):
        calls["funded"].append((funder.address, recipient, top_up))
        return {"status": "success"}

    def fake_apply(w3, account, target, sponsor=None, timeout=None):
        calls["delegated"].append((account.address, target, sponsor.address))
        return DelegationResult(
            eoa=account.address, target=target, tx_hash="0x" + "22" * 32,
            block_number=44, gas_used=46_000, delegated_to=outcome["delegated_to"],
        )

    monkeypatch.setattr(cli, "fund_account", fake_fund)
    monkeypatch.setattr(cli, "compile_counter", lambda: {"abi": [], "bytecode": "0x6080"})
    monkeypatch.setattr(cli, "deploy_counter", lambda w3, account, data, timeout=None: COUNTER_ADDRESS)
    monkeypatch.setattr(cli, "apply_delegation", fake_apply)
    monkeypatch.setattr(cli, "CounterClient", FakeCounter)
    return calls, outcome


def test_demo_runs_end_to_end(demo_env, eoa, sponsor, capsys):
    calls, _ = demo_env

    assert cli.main(["--no-log-file", "demo", *KEYS]) == 0

    assert calls["funded"] == [(sponsor.address, eoa.address, True)]
    assert calls["delegated"] == [(eoa.address, COUNTER_ADDRESS, sponsor.address)]
    (client,) = FakeCounter.instances
    assert client.address == eoa.address
    assert client.senders == [sponsor.address] * 3

    out = capsys.readouterr().out
    assert '"number": 3' in out
    assert '"expected": 3' in out
    assert f'"counter": "{COUNTER_ADDRESS}"' in out


def test_demo_unconfirmed_delegation_exits_1(demo_env, capsys):
    _, outcome = demo_env
    outcome["delegated_to"] = None

    assert cli.main(["--no-log-file", "demo", *KEYS]) == 1
    assert "Delegation not applied" in capsys.readouterr().err
    assert FakeCounter.instances == []


def test_demo_count_mismatch_exits_1(demo_env, monkeypatch, capsys):
    monkeypatch.setattr(FakeCounter, "step", 2)

    assert cli.main(["--no-log-file", "demo", "--count", "2", *KEYS]) == 1
    assert "Unexpected number(): 4 != 2" in capsys.readouterr().err


def test_demo_without_eoa_key_uses_throwaway_account(demo_env, sponsor):
    calls, _ = demo_env

    assert cli.main(["--no-log-file", "demo", "--deployer-key", SPONSOR_KEY]) == 0

    ((funder, recipient, _),) = calls["funded"]
    assert funder == sponsor.address
    assert recipient != sponsor.address
    assert FakeCounter.instances[0].address == recipient


def test_demo_bad_eoa_keystore_fails_before_funding(demo_env, capsys):
    calls, _ = demo_env

    args = ["--no-log-file", "demo", "--deployer-key", SPONSOR_KEY, "--eoa-keystore", "/nonexistent/eoa.json"]
    assert cli.main(args) == 1

    assert calls["funded"] == []
    assert "eoa.json" in capsys.readouterr().err


def test_status_bad_eoa_keystore_is_an_error(node, monkeypatch, capsys):
    monkeypatch.delenv("EOA_PRIVATE_KEY", raising=False)
    args = ["--no-log-file", "status", "--deployer-key", SPONSOR_KEY, "--eoa-keystore", "/nonexistent/eoa.json"]
    assert cli.main(args) == 1
    assert "eoa.json" in capsys.readouterr().err
