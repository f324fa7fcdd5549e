"""Storage deposit policy for SocialDB writes.

Decides how much deposit a ``set`` call has to carry given the signer's
access key, existing write grants and the storage the target already holds.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from ..exceptions import (
    BosInsufficientKeyScopeError,
    BosInvalidResponseError,
    BosPermissionDeniedError,
)

logger = logging.getLogger(__name__)

SET_METHOD = "set"


@dataclass(frozen=True)
class FullAccess:
    """Full access key: may call any method and attach any deposit."""


@dataclass(frozen=True)
class FunctionCallPermission:
    """Function-call access key restricted to one contract."""

    receiver_id: str
    """Contract the key may call"""

    method_names: tuple[str, ...] = ()
    """Allowed methods (empty means any method of ``receiver_id``)"""

    def can_call(self, contract_id: str, method_name: str) -> bool:
        return self.receiver_id == contract_id and (
            not self.method_names or method_name in self.method_names
        )


Permission = Union[FullAccess, FunctionCallPermission]

# (grantee, key) -> bool; grantee is an account id or a public key
GrantCheck = Callable[[str, str], bool]


def permission_from_view(view: Any) -> Permission:
    """Build a Permission from an RPC ``view_access_key`` permission value.

    Raises:
        BosInvalidResponseError: If the value has an unknown shape
    """
    if view == "FullAccess":
        return FullAccess()
    if isinstance(view, dict) and isinstance(view.get("FunctionCall"), dict):
        function_call = view["FunctionCall"]
        return FunctionCallPermission(
            receiver_id=function_call.get("receiver_id", ""),
            method_names=tuple(function_call.get("method_names") or ()),
        )
    raise BosInvalidResponseError(f"Unknown access key permission: {view!r}")


def can_write_to_store(permission: Permission, store_contract: str) -> bool:
    """Whether a key may sign a ``set`` call on the store contract."""
    if isinstance(permission, FullAccess):
        return True
    return permission.can_call(store_contract, SET_METHOD)


def select_base_required(target_has_components: bool, new_account_deposit: int) -> int:
    """Pick the deposit the write needs before signer-specific adjustments.

    An owner that already stores components is assumed to have enough
    storage for incremental writes.
    """
    return 0 if target_has_components else new_account_deposit


def compute_deposit(
    signer: str,
    signer_public_key: str,
    permission: Permission,
    target: str,
    store_contract: str,
    is_grant: GrantCheck,
    base_required: int,
    minimal_deposit: int = 1,
) -> int:
    """Compute the deposit to attach to a ``set`` call.

    Args:
        signer: Account signing the transaction
        signer_public_key: Public key the transaction is signed with
        permission: Permission of that key
        target: Account whose components are written
        store_contract: SocialDB contract account id
        is_grant: Checks whether a write grant exists for a grantee and key
        base_required: Deposit the write needs (see ``select_base_required``)
        minimal_deposit: Nominal deposit for self-writes without a grant

    Returns:
        Deposit in yoctoNEAR

    Raises:
        BosPermissionDeniedError: The key cannot write to the store, or the
            signer has no standing in the target namespace
        BosInsufficientKeyScopeError: A function-call key would need to
            attach a deposit
    """
    if base_required < 0:
        raise ValueError("base_required must be non-negative")

    if not can_write_to_store(permission, store_contract):
        raise BosPermissionDeniedError(
            "Signer access key cannot be used to sign a transaction "
            "to update components in Social DB."
        )

    full_access = isinstance(permission, FullAccess)
    grant_key = f"{target}/widget"
    granted = is_grant(signer_public_key, grant_key) or is_grant(signer, grant_key)
    logger.debug(
        f"Deposit policy: signer={signer} target={target} "
        f"full_access={full_access} granted={granted} base={base_required}"
    )

    if granted:
        if base_required == 0:
            return 0
        if full_access:
            return base_required
        raise BosInsufficientKeyScopeError(
            "Social DB requires more storage deposit, but it cannot be covered "
            "when signing with a function-call access key."
        )

    if signer == target:
        if full_access:
            return max(base_required, minimal_deposit)
        raise BosInsufficientKeyScopeError(
            "Social DB requires more storage deposit, but it cannot be covered "
            "when signing with a function-call access key."
        )

    raise BosPermissionDeniedError(
        f"Signer <{signer}> is not allowed to modify components of <{target}>."
    )
