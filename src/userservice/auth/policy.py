"""
Authorization policy.

Every HTTP operation has exactly one required role, looked up in
OPERATION_POLICY and checked by `authorize`. SUPERADMIN implies
SYSTEM_ADMINISTRATOR.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet

if TYPE_CHECKING:
    from src.userservice.auth.credentials import Credential


class Role(str, Enum):
    SUPERADMIN = "SUPERADMIN"
    SYSTEM_ADMINISTRATOR = "SYSTEM_ADMINISTRATOR"


# role -> roles it grants (including itself)
ROLE_HIERARCHY: Dict[Role, FrozenSet[Role]] = {
    Role.SUPERADMIN: frozenset({Role.SUPERADMIN, Role.SYSTEM_ADMINISTRATOR}),
    Role.SYSTEM_ADMINISTRATOR: frozenset({Role.SYSTEM_ADMINISTRATOR}),
}

OPERATION_POLICY: Dict[str, Role] = {
    "insert": Role.SUPERADMIN,
    "edit": Role.SUPERADMIN,
    "delete": Role.SUPERADMIN,
    "view": Role.SUPERADMIN,
    "hello": Role.SYSTEM_ADMINISTRATOR,
}


def effective_roles(credential: "Credential") -> FrozenSet[Role]:
    granted = set()
    for role in credential.roles:
        granted |= ROLE_HIERARCHY[role]
    return frozenset(granted)


def authorize(credential: "Credential", required_role: Role) -> bool:
    return required_role in effective_roles(credential)
