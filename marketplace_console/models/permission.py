"""Permission catalog: every valid ``resource:action`` tag."""

from enum import Enum as PyEnum


class Resource(str, PyEnum):
    TENANTS = "tenants"
    CATEGORIES = "categories"
    PRODUCTS = "products"
    VENDORS = "vendors"
    AFFILIATES = "affiliates"
    DELIVERY_PARTNERS = "delivery_partners"
    ORDERS = "orders"
    DELIVERIES = "deliveries"
    REFUNDS = "refunds"
    TRANSACTIONS = "transactions"
    REWARDS = "rewards"
    LOANS = "loans"
    USERS = "users"
    ROLES = "roles"
    SETTINGS = "settings"


class Action(str, PyEnum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


# Grants every catalog permission, but only when explicitly granted.
WILDCARD = "*"


def permission(resource: Resource, action: Action) -> str:
    """Build the ``resource:action`` tag for a catalog entry."""
    return f"{resource.value}:{action.value}"


def permissions_for(resource: Resource, *actions: Action) -> frozenset[str]:
    """All tags for ``resource``, limited to ``actions`` when given."""
    return frozenset(permission(resource, action) for action in (actions or tuple(Action)))


ALL_PERMISSIONS: frozenset[str] = frozenset(
    permission(resource, action) for resource in Resource for action in Action
)
