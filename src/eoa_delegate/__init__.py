"""
EIP-7702 account delegation walkthrough.

Funds an EOA, deploys a Counter contract and designates the EOA's code to
it, so calls to the EOA run Counter against the EOA's own storage.
"""

__version__ = "0.1.0"
