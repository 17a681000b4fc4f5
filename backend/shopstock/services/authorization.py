# Overview: Role-based admission control for posting and catalog/user management.

"""
Authorization Gate

Roles are a fixed ladder (ADMIN, MANAGER, CLERK) carried on the User row.
Checks here are pure: a denial is a False return that the caller turns into
an "Unauthorized" outcome. Nothing in this module raises or touches the DB.

POSTING RULES:
- SALE: any authenticated role
- PURCHASE (stock in): ADMIN or MANAGER only
- No actor: denied for every type
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models import (
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_CLERK,
    TRANSACTION_SALE,
    TRANSACTION_PURCHASE,
)

POSTING_ROLES = {
    TRANSACTION_SALE: frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_CLERK}),
    TRANSACTION_PURCHASE: frozenset({ROLE_ADMIN, ROLE_MANAGER}),
}

CATALOG_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})
USER_ADMIN_ROLES = frozenset({ROLE_ADMIN})


@dataclass(frozen=True)
class Actor:
    """
    The authenticated identity a service call runs as.

    Built once at the request boundary (see decorators.require_auth) and
    passed down explicitly; services never look up the current user themselves.
    """
    user_id: int
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)


def can_post(role: str | None, transaction_type: str) -> bool:
    if role is None:
        return False
    allowed = POSTING_ROLES.get(transaction_type)
    if allowed is None:
        return False
    return role in allowed


def denial_message(role: str | None, transaction_type: str) -> str:
    """User-facing reason for a failed can_post check."""
    if role is None:
        return "Unauthorized"
    return f"Unauthorized. {role.title()}s cannot record {transaction_type.lower()}s."


def can_manage_catalog(role: str | None) -> bool:
    return role in CATALOG_ROLES


def can_manage_users(role: str | None) -> bool:
    return role in USER_ADMIN_ROLES
