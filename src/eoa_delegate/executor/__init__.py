from eoa_delegate.executor.eip7702_sender import (
    DelegationError,
    DelegationResult,
    PreconditionError,
    TransactionError,
    apply_delegation,
    confirm_delegation,
    revoke_delegation,
    send_delegation,
    sign_authorization,
    wait_for_inclusion,
)

__all__ = [
    "DelegationError",
    "DelegationResult",
    "PreconditionError",
    "TransactionError",
    "apply_delegation",
    "confirm_delegation",
    "revoke_delegation",
    "send_delegation",
    "sign_authorization",
    "wait_for_inclusion",
]
