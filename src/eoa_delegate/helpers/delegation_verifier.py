"""
Delegation Status Verifier
==========================

Checks that the node, accounts and target contract are ready for an EIP-7702
designation, and reports what an EOA currently delegates to.

Usage:
    python -m eoa_delegate status --eoa 0x... --target 0x...
"""

from web3 import Web3
from web3.exceptions import Web3Exception
from eth_utils import is_address, to_checksum_address

from eoa_delegate.config.network import get_chain_id
from eoa_delegate.helpers.delegation import get_delegation, parse_delegation


# --------------------------------------------------------------------------- #
# Verification Checks                                                         #
# --------------------------------------------------------------------------- #

class DelegationVerifier:
    """Verifies EIP-7702 readiness and delegation state."""

    def __init__(self, w3: Web3, expected_chain_id: int | None = None):
        self.w3 = w3
        self.expected_chain_id = expected_chain_id if expected_chain_id is not None else get_chain_id()
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.info: list[str] = []

    def add_error(self, msg: str) -> None:
        """Add an error message."""
        self.errors.append(f"❌ {msg}")

    def add_warning(self, msg: str) -> None:
        """Add a warning message."""
        self.warnings.append(f"⚠️  {msg}")

    def add_info(self, msg: str) -> None:
        """Add an info message."""
        self.info.append(f"ℹ️  {msg}")

    def check_network_connection(self) -> bool:
        """Verify network connection and chain ID."""
        print("\n🌐 Checking Network Connection...")

        try:
            if not self.w3.is_connected():
                self.add_error("Not connected to network")
                return False

            chain_id = self.w3.eth.chain_id
            self.add_info(f"Connected to chain ID: {chain_id}")

            if chain_id != self.expected_chain_id:
                self.add_warning(f"Unexpected chain (expected {self.expected_chain_id}, got {chain_id})")

            latest_block = self.w3.eth.get_block('latest')
            self.add_info(f"Latest block: {latest_block['number']}")
            return True

        except (Web3Exception, ValueError, OSError) as e:
            self.add_error(f"Network check failed: {e}")
            return False

    def check_target_contract(self, target: str | None) -> bool:
        """Verify the delegation target has code (and is not itself delegated)."""
        print("\n📄 Checking Target Contract...")

        if not target:
            self.add_warning("No target contract given")
            return True
        if not is_address(target):
            self.add_error(f"Target is not a valid address: {target}")
            return False

        try:
            target = to_checksum_address(target)
            code = self.w3.eth.get_code(target)
            if len(code) == 0:
                self.add_error(f"No contract deployed at {target}")
                return False
            if parse_delegation(code) is not None:
                self.add_warning(f"{target} is a delegated EOA, not a contract; delegation chains are not followed")
            self.add_info(f"Contract found at {target} ({len(code)} bytes)")
            return True

        except (Web3Exception, ValueError, OSError) as e:
            self.add_error(f"Contract check failed: {e}")
            return False

    def check_account(self, label: str, address: str | None, min_balance_eth: float = 0.0) -> bool:
        """Report balance and nonce for an account."""
        print(f"\n👤 Checking {label}...")

        if not address:
            self.add_warning(f"{label} not given")
            return True

        try:
            address = to_checksum_address(address)
            balance = self.w3.eth.get_balance(address)
            balance_eth = self.w3.from_wei(balance, 'ether')
            nonce = self.w3.eth.get_transaction_count(address)
            self.add_info(f"{label}: {address} balance {balance_eth:.6f} ETH, nonce {nonce}")

            if balance == 0:
                self.add_warning(f"{label} has zero balance")
            elif balance_eth < min_balance_eth:
                self.add_warning(f"{label} low balance: {balance_eth:.6f} ETH")
            return True

        except (Web3Exception, ValueError, OSError) as e:
            self.add_error(f"{label} check failed: {e}")
            return False

    def check_delegation(self, eoa: str | None, target: str | None = None) -> bool:
        """Report the EOA's delegation, and compare it with ``target`` when given."""
        print("\n🔐 Checking Delegation...")

        if not eoa:
            self.add_warning("No EOA given")
            return True

        try:
            eoa = to_checksum_address(eoa)
            current = get_delegation(self.w3, eoa)
        except (Web3Exception, ValueError, OSError) as e:
            self.add_error(f"Delegation check failed: {e}")
            return False

        if current is None:
            self.add_info(f"{eoa} has no delegation")
        else:
            self.add_info(f"{eoa} delegates to {current}")

        if target and current != to_checksum_address(target):
            self.add_warning(f"{eoa} is not delegated to {to_checksum_address(target)}")
        return True

    def run_all_checks(self, eoa: str | None = None, target: str | None = None, sponsor: str | None = None) -> bool:
        """Run all verification checks."""
        print("🔧 EIP-7702 Delegation Status")
        print("=" * 50)

        checks = [self.check_network_connection()]
        if not checks[0]:
            return self.print_summary(False)

        checks += [
            self.check_target_contract(target),
            self.check_account("EOA", eoa),
            self.check_account("Sponsor", sponsor, min_balance_eth=0.01),
            self.check_delegation(eoa, target),
        ]
        return self.print_summary(all(checks))

    def print_summary(self, all_passed: bool) -> bool:
        print("\n" + "=" * 50)
        print("📊 Verification Summary")
        print("=" * 50)

        if self.info:
            print("\n📋 Information:")
            for msg in self.info:
                print(f"   {msg}")

        if self.warnings:
            print(f"\n⚠️  Warnings ({len(self.warnings)}):")
            for msg in self.warnings:
                print(f"   {msg}")

        if self.errors:
            print(f"\n❌ Errors ({len(self.errors)}):")
            for msg in self.errors:
                print(f"   {msg}")

        passed = all_passed and not self.errors
        if passed:
            print("\n✅ All checks passed.")
        else:
            print("\n❌ Some checks failed. Please fix the errors above.")

        return passed
