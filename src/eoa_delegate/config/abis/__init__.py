"""
Contract ABI package for the EIP-7702 delegation walkthrough.
"""

from .counter import COUNTER_ABI

__all__ = ["COUNTER_ABI"]
