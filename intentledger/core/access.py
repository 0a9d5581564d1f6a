"""
intentledger/core/access.py

Role gating for both registries.

Each registry owns one AccessControl:
    - exactly one ADMIN identity, fixed at construction, never transferable
    - one member role (EXECUTOR for intents, COMMITTER for receipts),
      stored as identity → bool and toggled only by the admin

Every mutating registry call starts with require(caller, role).
No other module performs membership tests.
"""

import logging
import threading
from enum import Enum
from typing import Dict, List

from intentledger.core.exceptions import AuthorizationError, Reason, ValidationError


logger = logging.getLogger(__name__)


class Role(Enum):
    ADMIN     = "admin"
    EXECUTOR  = "executor"
    COMMITTER = "committer"


_DENIAL_REASONS = {
    Role.ADMIN:     Reason.NOT_ADMIN,
    Role.EXECUTOR:  Reason.NOT_EXECUTOR,
    Role.COMMITTER: Reason.NOT_COMMITTER,
}


def require_identity(identity, field: str = "identity") -> str:
    """Reject anything that is not a non-empty string identity."""
    if not isinstance(identity, str) or not identity:
        raise ValidationError(
            f"{field} must be a non-empty string, got {identity!r}",
            reason=Reason.INVALID_IDENTITY,
            details={"field": field},
        )
    return identity


class AccessControl:
    """
    Capability set over {ADMIN, <member_role>}.

    Usage:
        access = AccessControl(admin="ops-admin", member_role=Role.EXECUTOR)
        access.require("ops-admin", Role.ADMIN)
        access.set_member("orchestrator", True)
        access.require("orchestrator", Role.EXECUTOR)
    """

    def __init__(self, admin: str, member_role: Role) -> None:
        if member_role is Role.ADMIN:
            raise ValueError("member_role must not be ADMIN")
        if not isinstance(admin, str) or not admin:
            raise ValueError(f"admin must be a non-empty string, got {admin!r}")

        self._admin       = admin
        self._member_role = member_role
        self._members: Dict[str, bool] = {}
        self._lock = threading.Lock()

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def member_role(self) -> Role:
        return self._member_role

    def has_role(self, identity: str, role: Role) -> bool:
        """True iff `identity` currently holds `role`. Never raises."""
        if role is Role.ADMIN:
            return identity == self._admin
        if role is not self._member_role:
            return False
        return self._members.get(identity, False)

    def require(self, identity: str, role: Role) -> None:
        """
        The single authorization check.

        Raises:
            AuthorizationError — reason NOT_ADMIN / NOT_EXECUTOR / NOT_COMMITTER
        """
        if not self.has_role(identity, role):
            raise AuthorizationError(
                f"{identity!r} does not hold role {role.value}",
                reason=_DENIAL_REASONS[role],
                details={"identity": identity, "role": role.value},
            )

    def set_member(self, identity: str, authorized: bool) -> None:
        """
        Grant or revoke the member role. Idempotent.
        Callers must have checked ADMIN first.
        """
        with self._lock:
            self._members[identity] = bool(authorized)
        logger.info(
            "%s %s for %r",
            "granted" if authorized else "revoked",
            self._member_role.value,
            identity,
        )

    def members(self) -> List[str]:
        """Identities currently holding the member role, sorted."""
        return sorted(i for i, ok in self._members.items() if ok)
