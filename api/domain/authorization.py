# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

Residents may read, check in and vote. Managing assemblies and agenda
items requires the ``assembly:manage`` permission, granted explicitly in
the token or implied by the admin and sindico roles.
"""

from typing import List, Dict, Optional
from dataclasses import dataclass, field

from models.entities import UserContext


MANAGE_PERMISSION = "assembly:manage"

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "admin": [MANAGE_PERMISSION],
    "sindico": [MANAGE_PERMISSION],
}


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = field(default_factory=list)


def effective_permissions(role: Optional[str], permissions: Optional[List[str]]) -> List[str]:
    """
    Merge explicit token permissions with those implied by the role.

    Args:
        role: Role claim from the token
        permissions: Explicit permission claims

    Returns:
        Sorted list of unique permission strings
    """
    merged = set(permissions or [])
    if role:
        merged.update(ROLE_PERMISSIONS.get(role.lower(), []))
    return sorted(merged)


def check_permission(user_context: UserContext, required_permission: str) -> AuthorizationResult:
    """
    Check if user has a specific permission.

    Args:
        user_context: User context with permissions
        required_permission: Permission string to check

    Returns:
        AuthorizationResult indicating if permission is granted
    """
    granted = effective_permissions(user_context.role, user_context.permissions)
    if required_permission in granted:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Missing required permission: {required_permission}",
        missing_permissions=[required_permission]
    )


def can_manage_assemblies(user_context: UserContext) -> bool:
    return check_permission(user_context, MANAGE_PERMISSION).allowed
