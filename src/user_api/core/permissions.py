"""Role-based access control decisions.

``authorize`` is a pure function: it takes the authenticated identity (or
``None``) and the set of roles an operation requires, and returns a
:class:`Decision`.  Denials for authenticated identities are logged as
warnings since they can indicate privilege-escalation attempts.
"""

import enum
from dataclasses import dataclass

from loguru import logger

from user_api.models.user import Role

ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})
ANY_USER: frozenset[Role] = frozenset({Role.ADMIN, Role.USER})


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as attached by the token verifier."""

    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class DenyReason(enum.StrEnum):
    """Why access was denied."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: DenyReason | None = None


ALLOW = Decision(allowed=True)


def authorize(
    identity: Identity | None,
    required_roles: frozenset[Role] | set[Role],
    *,
    endpoint: str | None = None,
    method: str | None = None,
) -> Decision:
    """Decide whether ``identity`` may perform an operation requiring ``required_roles``.

    Args:
        identity: The authenticated caller, or None for anonymous requests.
        required_roles: Roles allowed to perform the operation.
        endpoint: Request path, for the denial log record.
        method: HTTP method, for the denial log record.

    Returns:
        ``ALLOW`` or a denied decision carrying the reason.
    """
    if identity is None:
        return Decision(allowed=False, reason=DenyReason.UNAUTHENTICATED)

    if identity.role not in required_roles:
        logger.warning(
            "Unauthorized access attempt: user '{}' with role '{}' requires one of {} ({} {})",
            identity.user_id,
            identity.role,
            sorted(str(role) for role in required_roles),
            method or "-",
            endpoint or "-",
        )
        return Decision(allowed=False, reason=DenyReason.FORBIDDEN)

    return ALLOW
