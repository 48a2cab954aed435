"""
EIP-7702 delegation designation helpers
=======================================

After a set-code transaction is included, the authorizing EOA's code is a
23-byte delegation designation::

    0xef 0x01 0x00 || target_address (20 bytes)

Calls to the EOA then execute the target's code against the EOA's storage
and balance. Designating the zero address clears the code again.

This module builds and parses designations and computes the digest an
authorization tuple is signed over::

    keccak256(0x05 || rlp([chain_id, address, nonce]))
"""

from __future__ import annotations

from typing import Any, Mapping

import rlp
from eth_keys import keys
from eth_typing import ChecksumAddress
from eth_utils import keccak, to_bytes, to_canonical_address, to_checksum_address
from web3 import Web3

SET_CODE_TX_TYPE = 0x04
AUTHORIZATION_MAGIC = b"\x05"
DELEGATION_PREFIX = bytes.fromhex("ef0100")
DELEGATION_LENGTH = len(DELEGATION_PREFIX) + 20

MAX_AUTH_CHAIN_ID = 2**256 - 1
MAX_AUTH_NONCE = 2**64 - 1
SECP256K1N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def delegation_designation(address: str | bytes) -> bytes:
    """Return the code an EOA carries once delegated to ``address``."""
    return DELEGATION_PREFIX + to_canonical_address(address)


def parse_delegation(code: bytes | str | None) -> ChecksumAddress | None:
    """
    Extract the delegation target from account code.

    Returns None for empty code and for ordinary contract code; only an
    exact 23-byte designation yields an address.
    """
    if not code:
        return None
    if isinstance(code, str):
        code = to_bytes(hexstr=code)
    code = bytes(code)
    if len(code) != DELEGATION_LENGTH or not code.startswith(DELEGATION_PREFIX):
        return None
    return to_checksum_address(code[len(DELEGATION_PREFIX):])


def is_delegated(code: bytes | str | None) -> bool:
    """True when ``code`` is a delegation designation."""
    return parse_delegation(code) is not None


def get_delegation(w3: Web3, eoa: str) -> ChecksumAddress | None:
    """Read ``eoa``'s code from the node and return its delegation target."""
    code = w3.eth.get_code(Web3.to_checksum_address(eoa))
    return parse_delegation(code)


def authorization_digest(chain_id: int, address: str | bytes, nonce: int) -> bytes:
    """Digest signed by the EOA for the tuple (chain_id, address, nonce)."""
    if not 0 <= chain_id <= MAX_AUTH_CHAIN_ID:
        raise ValueError(f"chain_id out of range: {chain_id}")
    if not 0 <= nonce <= MAX_AUTH_NONCE:
        raise ValueError(f"authorization nonce out of range: {nonce}")
    payload = rlp.encode([chain_id, to_canonical_address(address), nonce])
    return keccak(AUTHORIZATION_MAGIC + payload)


def _field(auth: Any, camel: str, snake: str) -> Any:
    if isinstance(auth, Mapping):
        return auth[camel] if camel in auth else auth[snake]
    return getattr(auth, snake)


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    return int(value)


def recover_authority(auth: Any) -> ChecksumAddress:
    """
    Recover the address that signed an authorization.

    Accepts the dict form (``chainId``/``yParity`` keys, ints or hex strings)
    as well as eth-account's ``SignedSetCodeAuthorization``.

    Raises:
        ValueError: If the signature fields are malformed, or ``s`` is in the
            upper half of the curve order (nodes reject such tuples)
    """
    chain_id = _as_int(_field(auth, "chainId", "chain_id"))
    nonce = _as_int(_field(auth, "nonce", "nonce"))
    address = _field(auth, "address", "address")
    y_parity = _as_int(_field(auth, "yParity", "y_parity"))
    r = _as_int(_field(auth, "r", "r"))
    s = _as_int(_field(auth, "s", "s"))

    if y_parity not in (0, 1):
        raise ValueError(f"yParity must be 0 or 1, got {y_parity}")
    if not 0 < r < SECP256K1N:
        raise ValueError("r out of range")
    if not 0 < s <= SECP256K1N // 2:
        raise ValueError("s must be in the lower half of the curve order")

    digest = authorization_digest(chain_id, address, nonce)
    signature = keys.Signature(vrs=(y_parity, r, s))
    public_key = signature.recover_public_key_from_msg_hash(digest)
    return to_checksum_address(public_key.to_canonical_address())
