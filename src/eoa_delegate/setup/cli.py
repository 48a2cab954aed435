#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address
from web3 import Web3

from eoa_delegate.config.contracts import get_counter_address
from eoa_delegate.config.logging_config import get_cli_logger, log_transaction
from eoa_delegate.config.network import FUND_AMOUNT_ETH, RECEIPT_TIMEOUT
from eoa_delegate.executor.eip7702_sender import PreconditionError, apply_delegation, revoke_delegation
from eoa_delegate.helpers.counter_client import CounterClient
from eoa_delegate.helpers.delegation_verifier import DelegationVerifier
from eoa_delegate.helpers.web3_setup import get_connected_web3
from .deploy_counter import compile_counter, deploy_counter, load_artifact, save_artifact
from .fund_eoa import GasConfig, eip1559_gas_config, fund_account
from .keystore import DEPLOYER_KEY_ENVS, EOA_KEY_ENVS, create_random_account, load_account

logger = logging.getLogger("eoa_delegate.cli")


def _deployer(args: argparse.Namespace) -> LocalAccount:
    return load_account(
        private_key=args.deployer_key,
        env_names=DEPLOYER_KEY_ENVS,
        keystore_path=args.deployer_keystore,
        keystore_pass=args.keystore_pass,
    )


def _eoa(args: argparse.Namespace) -> LocalAccount:
    return load_account(
        private_key=args.eoa_key,
        env_names=EOA_KEY_ENVS,
        keystore_path=args.eoa_keystore,
        keystore_pass=args.keystore_pass,
    )


def _address(value: str | None, what: str) -> str:
    if not value:
        raise ValueError(f"{what} address not given")
    if not is_address(value):
        raise ValueError(f"Invalid {what} address: {value}")
    return to_checksum_address(value)


def _target(args: argparse.Namespace) -> str:
    return _address(args.target or get_counter_address(), "target (use --target or COUNTER_ADDRESS)")


def _sponsor(args: argparse.Namespace) -> LocalAccount | None:
    if args.sponsor == "eoa":
        return None
    return _deployer(args)


def _has_key_source(args: argparse.Namespace, role: str, env_names: tuple[str, ...]) -> bool:
    """True when a key, keystore or env var was given for ``role`` ('eoa' or 'deployer')."""
    if getattr(args, f"{role}_key") or getattr(args, f"{role}_keystore"):
        return True
    return any(os.getenv(name) for name in env_names)


def _configured_address(loader, args: argparse.Namespace, role: str, env_names: tuple[str, ...]) -> str | None:
    """Address of an optional account; None only when no key source is given."""
    if not _has_key_source(args, role, env_names):
        return None
    return loader(args).address


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_fund(args: argparse.Namespace, w3: Web3) -> int:
    deployer = _deployer(args)
    recipient = _address(args.to, "recipient") if args.to else _eoa(args).address
    gas = eip1559_gas_config(w3) if args.eip1559 else GasConfig.legacy_default()
    summary = fund_account(
        w3,
        deployer,
        recipient,
        amount_eth=args.amount,
        gas=gas,
        top_up=args.top_up,
        timeout=args.timeout,
    )
    log_transaction(logger, "FUND", summary["tx_hash"], to=recipient, value_wei=summary["value_wei"])
    _print_json(summary)
    return 0


def cmd_deploy(args: argparse.Namespace, w3: Web3) -> int:
    deployer = _deployer(args)
    if args.artifact:
        contract_data = load_artifact(Path(args.artifact))
    else:
        contract_data = compile_counter()
        if args.save_artifact:
            save_artifact(contract_data, Path(args.save_artifact))

    address = deploy_counter(w3, deployer, contract_data, timeout=args.timeout)
    log_transaction(logger, "DEPLOY", None, contract=address)
    print(f"COUNTER_ADDRESS={address}")
    return 0


def cmd_delegate(args: argparse.Namespace, w3: Web3) -> int:
    eoa = _eoa(args)
    target = _target(args)
    sponsor = _sponsor(args)
    result = apply_delegation(w3, eoa, target, sponsor=sponsor, timeout=args.timeout)
    log_transaction(
        logger, "DELEGATE", result.tx_hash, gas_used=result.gas_used,
        success=result.confirmed, eoa=result.eoa, target=result.target,
    )
    _print_json({**result.__dict__, "confirmed": result.confirmed})
    return 0 if result.confirmed else 1


def cmd_revoke(args: argparse.Namespace, w3: Web3) -> int:
    eoa = _eoa(args)
    result = revoke_delegation(w3, eoa, sponsor=_sponsor(args), timeout=args.timeout)
    log_transaction(logger, "REVOKE", result.tx_hash, gas_used=result.gas_used, success=result.confirmed, eoa=result.eoa)
    _print_json({**result.__dict__, "confirmed": result.confirmed})
    return 0 if result.confirmed else 1


def cmd_status(args: argparse.Namespace, w3: Web3) -> int:
    eoa = args.eoa or _configured_address(_eoa, args, "eoa", EOA_KEY_ENVS)
    sponsor = _configured_address(_deployer, args, "deployer", DEPLOYER_KEY_ENVS)
    verifier = DelegationVerifier(w3)
    ok = verifier.run_all_checks(eoa=eoa, target=args.target or get_counter_address(), sponsor=sponsor)
    return 0 if ok else 1


def cmd_counter(args: argparse.Namespace, w3: Web3) -> int:
    address = _address(args.address, "counter") if args.address else _eoa(args).address
    client = CounterClient(w3, address, timeout=args.timeout)

    if args.action == "number":
        print(client.number())
        return 0
    if args.action == "hello":
        print(client.say_hello())
        return 0
    if args.action == "balance":
        print(client.balance())
        return 0

    signer = _eoa(args) if args.signer == "eoa" else _deployer(args)
    if args.action == "increment":
        receipt = client.increment(signer)
    elif args.action == "set-number":
        if args.value is None:
            raise ValueError("set-number requires --value")
        receipt = client.set_number(signer, int(args.value, 0))
    else:
        if args.value is None:
            raise ValueError("transfer requires --value (wei)")
        receipt = client.transfer_to_sender(signer, int(args.value, 0))

    log_transaction(logger, args.action.upper(), Web3.to_hex(receipt["transactionHash"]), gas_used=receipt["gasUsed"], address=address)
    return 0


def cmd_demo(args: argparse.Namespace, w3: Web3) -> int:
    """Fund, deploy, delegate, increment through the EOA, then check the count."""
    deployer = _deployer(args)
    if _has_key_source(args, "eoa", EOA_KEY_ENVS):
        eoa = _eoa(args)
    else:
        eoa, _ = create_random_account()
        logger.info(f"No EOA key configured; using throw-away EOA {eoa.address}")

    logger.info("Step 1: fund EOA")
    fund_account(w3, deployer, eoa.address, amount_eth=args.amount, top_up=True, timeout=args.timeout)

    logger.info("Step 2: deploy Counter")
    contract_data = load_artifact(Path(args.artifact)) if args.artifact else compile_counter()
    target = deploy_counter(w3, deployer, contract_data, timeout=args.timeout)

    logger.info("Step 3: designate EOA to Counter")
    result = apply_delegation(w3, eoa, target, sponsor=deployer, timeout=args.timeout)
    if not result.confirmed:
        print(f"Delegation not applied: EOA code points to {result.delegated_to}", file=sys.stderr)
        return 1

    logger.info(f"Step 4: increment() x{args.count} via EOA")
    client = CounterClient(w3, eoa.address, timeout=args.timeout)
    start = client.number()
    for _ in range(args.count):
        client.increment(deployer)

    number = client.number()
    expected = start + args.count
    _print_json({
        "eoa": eoa.address,
        "counter": target,
        "delegation_tx": result.tx_hash,
        "number": number,
        "expected": expected,
    })
    if number != expected:
        print(f"Unexpected number(): {number} != {expected}", file=sys.stderr)
        return 1
    return 0


def _add_key_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--deployer-key", help="Deployer private key (default: DEPLOYER_PRIVATE_KEY / PRIVATE_KEY)")
    p.add_argument("--deployer-keystore", help="Deployer keystore JSON path")
    p.add_argument("--eoa-key", help="EOA private key (default: EOA_PRIVATE_KEY)")
    p.add_argument("--eoa-keystore", help="EOA keystore JSON path")
    p.add_argument("--keystore-pass", help="Keystore password (default: WALLET_KEYSTORE_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eoa-delegate", description="EIP-7702 EOA delegation walkthrough")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: RPC_URL or http://localhost:8848)")
    parser.add_argument("--env-file", help="Load environment variables from this .env file")
    parser.add_argument("--timeout", type=int, default=RECEIPT_TIMEOUT, help="Seconds to wait for each receipt")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-log-file", action="store_true", help="Log to console only")
    sub = parser.add_subparsers(dest="cmd")

    p_fund = sub.add_parser("fund", help="Send ETH from the deployer to the EOA")
    _add_key_options(p_fund)
    p_fund.add_argument("--to", help="Recipient (default: the EOA)")
    p_fund.add_argument("--amount", default=FUND_AMOUNT_ETH, help="Amount in ETH (default 1)")
    p_fund.add_argument("--eip1559", action="store_true", help="Use EIP-1559 fees instead of a legacy 1 gwei transfer")
    p_fund.add_argument("--top-up", action="store_true", help="Only send the shortfall to reach --amount")
    p_fund.set_defaults(func=cmd_fund)

    p_deploy = sub.add_parser("deploy", help="Compile and deploy the Counter contract")
    _add_key_options(p_deploy)
    p_deploy.add_argument("--artifact", help="Use a precompiled artifact JSON instead of compiling")
    p_deploy.add_argument("--save-artifact", help="Write the compiled artifact to this path")
    p_deploy.set_defaults(func=cmd_deploy)

    p_del = sub.add_parser("delegate", help="Designate the EOA's code to the target contract")
    _add_key_options(p_del)
    p_del.add_argument("--target", help="Target contract (default: COUNTER_ADDRESS)")
    p_del.add_argument("--sponsor", choices=["deployer", "eoa"], default="deployer", help="Who sends and pays for the transaction")
    p_del.set_defaults(func=cmd_delegate)

    p_rev = sub.add_parser("revoke", help="Clear the EOA's delegation")
    _add_key_options(p_rev)
    p_rev.add_argument("--sponsor", choices=["deployer", "eoa"], default="deployer", help="Who sends and pays for the transaction")
    p_rev.set_defaults(func=cmd_revoke)

    p_status = sub.add_parser("status", help="Report node, account and delegation status")
    _add_key_options(p_status)
    p_status.add_argument("--eoa", help="EOA address (default: from EOA key)")
    p_status.add_argument("--target", help="Expected delegation target (default: COUNTER_ADDRESS)")
    p_status.set_defaults(func=cmd_status)

    p_counter = sub.add_parser("counter", help="Call the Counter ABI on the contract or the delegated EOA")
    _add_key_options(p_counter)
    p_counter.add_argument("action", choices=["number", "hello", "balance", "increment", "set-number", "transfer"])
    p_counter.add_argument("--address", help="Address to call (default: the EOA)")
    p_counter.add_argument("--value", help="Value for set-number, or wei amount for transfer")
    p_counter.add_argument("--signer", choices=["deployer", "eoa"], default="deployer", help="Account sending state-changing calls")
    p_counter.set_defaults(func=cmd_counter)

    p_demo = sub.add_parser("demo", help="Run fund -> deploy -> delegate -> increment -> verify end to end")
    _add_key_options(p_demo)
    p_demo.add_argument("--count", type=int, default=3, help="How many times to call increment()")
    p_demo.add_argument("--amount", default=FUND_AMOUNT_ETH, help="ETH to fund the EOA with")
    p_demo.add_argument("--artifact", help="Use a precompiled artifact JSON instead of compiling")
    p_demo.set_defaults(func=cmd_demo)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()
    get_cli_logger(verbose=args.verbose, to_file=not args.no_log_file)

    try:
        w3 = get_connected_web3(args.rpc_url)
        return int(args.func(args, w3))
    except PreconditionError as e:
        logger.error(f"{args.cmd} refused: {e}")
        print(f"Refused: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.error(f"{args.cmd} failed: {e}", exc_info=args.verbose)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
