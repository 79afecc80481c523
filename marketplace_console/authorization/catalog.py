"""
Role and permission catalog.

Single source of truth for valid tags and the static role defaults. Adding a
role or a permission is an edit to this module and the enums it reads; no
other component changes.
"""

from __future__ import annotations

from marketplace_console.models.permission import (
    ALL_PERMISSIONS,
    WILDCARD,
    Action,
    Resource,
    permissions_for,
)
from marketplace_console.models.role import ROLE_ALIASES, Role

_VALID_ROLES = frozenset(role.value for role in Role)

_SUPPORT_DEFAULTS = (
    permissions_for(Resource.ORDERS, Action.READ)
    | permissions_for(Resource.DELIVERIES, Action.READ)
    | permissions_for(Resource.REFUNDS, Action.READ)
    | permissions_for(Resource.TRANSACTIONS, Action.READ)
    | permissions_for(Resource.VENDORS, Action.READ)
    | permissions_for(Resource.PRODUCTS, Action.READ)
    | permissions_for(Resource.USERS, Action.READ)
)

_SUB_ADMIN_DEFAULTS = (
    _SUPPORT_DEFAULTS
    | permissions_for(Resource.CATEGORIES, Action.READ, Action.CREATE, Action.UPDATE)
    | permissions_for(Resource.PRODUCTS, Action.CREATE, Action.UPDATE)
    | permissions_for(Resource.ORDERS, Action.UPDATE)
    | permissions_for(Resource.DELIVERIES, Action.UPDATE)
    | permissions_for(Resource.DELIVERY_PARTNERS, Action.READ)
    | permissions_for(Resource.AFFILIATES, Action.READ)
    | permissions_for(Resource.REWARDS, Action.READ)
)

_ADMIN_DEFAULTS = (
    _SUB_ADMIN_DEFAULTS
    | permissions_for(Resource.CATEGORIES)
    | permissions_for(Resource.PRODUCTS)
    | permissions_for(Resource.VENDORS)
    | permissions_for(Resource.AFFILIATES)
    | permissions_for(Resource.DELIVERY_PARTNERS)
    | permissions_for(Resource.ORDERS)
    | permissions_for(Resource.DELIVERIES)
    | permissions_for(Resource.REFUNDS)
    | permissions_for(Resource.REWARDS)
    | permissions_for(Resource.LOANS)
    | permissions_for(Resource.USERS)
    | permissions_for(Resource.ROLES, Action.READ)
    | permissions_for(Resource.TENANTS, Action.READ)
)

ROLE_DEFAULT_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.SUPER: frozenset({WILDCARD}),
    Role.ADMIN: _ADMIN_DEFAULTS,
    Role.SUB_ADMIN: _SUB_ADMIN_DEFAULTS,
    Role.SUPPORT: _SUPPORT_DEFAULTS,
}


def is_valid_role(tag: object) -> bool:
    return isinstance(tag, str) and tag in _VALID_ROLES


def is_valid_permission(tag: object) -> bool:
    return isinstance(tag, str) and (tag == WILDCARD or tag in ALL_PERMISSIONS)


def parse_role(tag: str) -> Role | None:
    """Map a console or provider role tag to a ``Role``; unknown tags give ``None``."""
    if tag in _VALID_ROLES:
        return Role(tag)
    return ROLE_ALIASES.get(tag)


def default_permissions_for(role: Role | str | None) -> frozenset[str]:
    """Static grants for ``role``. Unknown roles get nothing."""
    if role is None or not is_valid_role(role):
        return frozenset()
    return ROLE_DEFAULT_PERMISSIONS[Role(role)]
