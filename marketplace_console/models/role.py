"""Console role enum for role-based access control."""

from enum import Enum as PyEnum


class Role(str, PyEnum):
    """
    Console roles, one per principal per session.

    Roles are discrete capability classes. The resolver compares them for
    equality only; it never treats one role as containing another.

    - SUPER: Marketplace super owner, manages every tenant
    - ADMIN: Tenant administrator
    - SUB_ADMIN: Tenant staff with day-to-day catalog and order duties
    - SUPPORT: Customer support, read-mostly access to orders and vendors
    """

    SUPER = "super"
    ADMIN = "admin"
    SUB_ADMIN = "sub_admin"
    SUPPORT = "support"


# Highest priority first, used to pick a primary role when the identity
# provider reports several.
ROLE_PRIORITY: tuple[Role, ...] = (Role.SUPER, Role.ADMIN, Role.SUB_ADMIN, Role.SUPPORT)

# Provider role names that differ from the console's own tags.
ROLE_ALIASES: dict[str, Role] = {
    "super_owner": Role.SUPER,
    "staff": Role.SUB_ADMIN,
}
