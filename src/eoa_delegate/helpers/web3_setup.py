"""
Web3 setup helper - provides common web3 instance utilities.

Public API
----------
get_web3_instance(rpc_url=None)
    Return a Web3 instance connected to the specified RPC URL.
    Falls back to RPC_URL, then to the local dev node default.
"""
from __future__ import annotations

from typing import Optional

from web3 import Web3

from eoa_delegate.config.network import RPC_TIMEOUT_SECONDS, get_rpc_url

__all__ = ["get_web3_instance", "get_connected_web3"]

# Cached web3 instance
_w3_instance: Optional[Web3] = None


def get_web3_instance(rpc_url: str | None = None) -> Web3:
    """
    Get a Web3 instance connected to the specified RPC URL.

    Args:
        rpc_url: Optional RPC URL. If not provided, uses RPC_URL env var or
            the local dev node default (http://localhost:8848).

    Returns:
        Web3 instance
    """
    global _w3_instance

    if rpc_url is None:
        rpc_url = get_rpc_url()

    # Return cached instance if URL matches
    if _w3_instance is not None and _w3_instance.provider.endpoint_uri == rpc_url:
        return _w3_instance

    _w3_instance = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT_SECONDS}))
    return _w3_instance


def get_connected_web3(rpc_url: str | None = None) -> Web3:
    """Like get_web3_instance, but fail fast when the node is unreachable.

    Raises:
        ConnectionError: If the RPC endpoint does not answer
    """
    w3 = get_web3_instance(rpc_url)
    if not w3.is_connected():
        raise ConnectionError(f"Could not connect to RPC endpoint {w3.provider.endpoint_uri}")
    return w3
