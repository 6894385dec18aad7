# Overview: Role-based permission checks with denial logging.

"""
Permission Checking

DESIGN PRINCIPLES:
- Fail closed: deny by default, require explicit permission grant
- Log denials only: permission grants are not logged
- Roles map to permissions statically (see mija.permissions)
"""

from flask import current_app

from ..models import Role, User
from ..permissions import DEFAULT_ROLE_PERMISSIONS, get_permission_definition, validate_permission_code


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_role_permissions(role: Role) -> frozenset[str]:
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def get_user_permissions(user: User) -> frozenset[str]:
    if user is None or not user.is_active:
        return frozenset()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")
    return permission_code in get_user_permissions(user)


def describe_user_permissions(user: User) -> list[dict]:
    """Catalogue entries for the user's permissions, sorted by code."""
    return [get_permission_definition(code) for code in sorted(get_user_permissions(user))]


def log_denial(user: User | None, action: str, reason: str, resource: str | None = None) -> None:
    current_app.logger.warning(
        "Permission denied: user=%s role=%s action=%s resource=%s reason=%s",
        user.id if user else None,
        user.role.value if user else None,
        action,
        resource,
        reason,
    )


def require_permission(user: User, permission_code: str, resource: str | None = None) -> None:
    """
    Raise PermissionDeniedError unless user holds permission_code.
    """
    if user_has_permission(user, permission_code):
        return
    log_denial(user, permission_code, f"Missing permission {permission_code}", resource)
    raise PermissionDeniedError(f"Permission {permission_code} required")
