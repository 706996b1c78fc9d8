# Overview: Lookups over the permission catalog and the role matrix.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, Role


_BY_CODE = {code: (code, name, description, category) for code, name, description, category in PERMISSION_DEFINITIONS}


def is_known_permission(code: str) -> bool:
    return code in _BY_CODE


def describe_permission(code: str) -> dict | None:
    """Catalog entry for a code, with the roles that hold it."""
    entry = _BY_CODE.get(code)
    if entry is None:
        return None
    return {
        "code": entry[0],
        "name": entry[1],
        "description": entry[2],
        "category": entry[3],
        "roles": [role.value for role in roles_with_permission(code)],
    }


def permission_catalog() -> dict[str, list[dict]]:
    """Every permission grouped by category, in definition order."""
    grouped: dict[str, list[dict]] = {}
    for code, _, _, category in PERMISSION_DEFINITIONS:
        grouped.setdefault(category, []).append(describe_permission(code))
    return grouped


def get_role_permissions(role) -> frozenset[str]:
    """Permission codes granted to a role (accepts Role or its string value)."""
    return DEFAULT_ROLE_PERMISSIONS.get(Role(role), frozenset())


def role_has_permission(role, code: str) -> bool:
    return code in get_role_permissions(role)


def roles_with_permission(code: str) -> list[Role]:
    """Roles holding a permission, most senior first."""
    return [role for role in Role if code in DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())]
