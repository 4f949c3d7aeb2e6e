# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS, PermissionCode
from .roles import DEFAULT_ROLE_PERMISSIONS, RoleName


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0].value for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0].value,
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def validate_role_mapping(mapping=None):
    """
    Check a role -> permission mapping at startup.

    Every role must be a RoleName, every granted code a PermissionCode that
    has a definition row, and every role must be present. Raises ValueError
    listing the problems so a bad mapping never reaches a request.
    """
    mapping = DEFAULT_ROLE_PERMISSIONS if mapping is None else mapping
    defined = set(get_all_permission_codes())
    problems = []
    seen_roles = set()

    for role, codes in mapping.items():
        try:
            seen_roles.add(RoleName(role))
        except ValueError:
            problems.append(f"unknown role: {role}")
            continue
        for code in codes:
            try:
                member = PermissionCode(code)
            except ValueError:
                problems.append(f"unknown permission for {role}: {code}")
                continue
            if member.value not in defined:
                problems.append(f"permission without definition: {member.value}")

    for role in RoleName:
        if role not in seen_roles:
            problems.append(f"role without mapping: {role.value}")

    if problems:
        raise ValueError("Invalid role permission mapping: " + "; ".join(problems))


def role_has_permission(role, code, mapping=None):
    """True when the given role is granted the permission code."""
    mapping = DEFAULT_ROLE_PERMISSIONS if mapping is None else mapping
    try:
        role_key = RoleName(role)
        code_key = PermissionCode(code)
    except ValueError:
        return False
    return code_key in mapping.get(role_key, ())


def get_role_permissions(role, mapping=None):
    mapping = DEFAULT_ROLE_PERMISSIONS if mapping is None else mapping
    try:
        role_key = RoleName(role)
    except ValueError:
        return []
    return sorted(code.value for code in mapping.get(role_key, ()))
