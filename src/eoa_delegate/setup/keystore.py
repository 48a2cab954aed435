#!/usr/bin/env python3
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount


DEPLOYER_KEY_ENVS = ("DEPLOYER_PRIVATE_KEY", "PRIVATE_KEY")
EOA_KEY_ENVS = ("EOA_PRIVATE_KEY",)


def normalize_privkey_hex(pk: str) -> str:
    if not isinstance(pk, str):
        raise ValueError("private key must be a hex string")
    pk = pk.strip()
    if pk.startswith("0x"):
        pk = pk[2:]
    if len(pk) != 64:
        raise ValueError("private key hex must be 64 characters (32 bytes)")
    int(pk, 16)  # validate hex
    return "0x" + pk


def account_from_key(private_key_hex: str) -> LocalAccount:
    return Account.from_key(normalize_privkey_hex(private_key_hex))


def resolve_password(cli_pass: str | None, pass_env: str | None = None) -> str:
    """Resolve keystore password from CLI or environment variable name.

    Precedence: cli_pass > env[pass_env] > env["WALLET_KEYSTORE_PASSWORD"].
    Raises ValueError if none found.
    """
    if cli_pass:
        return cli_pass
    env_name = pass_env or "WALLET_KEYSTORE_PASSWORD"
    pwd = os.getenv(env_name) or os.getenv("WALLET_KEYSTORE_PASSWORD")
    if pwd:
        return pwd
    raise ValueError(
        "Keystore password not provided. Use --keystore-pass or set WALLET_KEYSTORE_PASSWORD."
    )


def decrypt_keystore(keystore_json: dict[str, Any], password: str) -> str:
    """Decrypt a keystore JSON and return the 0x-prefixed private key hex string."""
    key_bytes = Account.decrypt(keystore_json, password)
    # Ensure plain bytes before hex() to avoid leading '0x' from HexBytes.hex()
    return "0x" + bytes(key_bytes).hex()


def read_json(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return json.load(f)


def load_account(
    private_key: str | None = None,
    env_names: tuple[str, ...] = DEPLOYER_KEY_ENVS,
    keystore_path: str | Path | None = None,
    keystore_pass: str | None = None,
) -> LocalAccount:
    """Load a signing account.

    Precedence: explicit private key > keystore file > first set env var.
    Raises OSError if no source is available.
    """
    if private_key:
        return account_from_key(private_key)
    if keystore_path:
        keystore_json = read_json(Path(keystore_path))
        password = resolve_password(keystore_pass)
        return account_from_key(decrypt_keystore(keystore_json, password))
    for name in env_names:
        value = os.getenv(name)
        if value:
            return account_from_key(value)
    raise OSError(f"No private key available: set one of {', '.join(env_names)} (use --env-file if needed)")


def create_random_account() -> tuple[LocalAccount, str]:
    """Create a throw-away account; returns (account, private key hex)."""
    acct: LocalAccount = Account.create()
    return acct, "0x" + bytes(acct.key).hex()
