from dataclasses import dataclass
from typing import assert_never

from fastapi import APIRouter, Depends

from marketplace_console.authorization.context import AuthorizationContext
from marketplace_console.authorization.guards import Can, requires
from marketplace_console.authorization.resolver import AccessResolver
from marketplace_console.core.exceptions import ForbiddenException
from marketplace_console.dependencies import get_access_resolver, get_authorization_context
from marketplace_console.models.permission import Action, Resource, permission
from marketplace_console.models.role import Role
from marketplace_console.schemas.dashboard_schemas import DashboardResponse, NavigationResponse

router = APIRouter()


@dataclass(frozen=True)
class SidebarEntry:
    """Sidebar link shown through its ``Can`` region."""

    title: str
    url: str
    guard: Can
    children: tuple["SidebarEntry", ...] = ()


def _read(resource: Resource) -> Can:
    return Can(permission=permission(resource, Action.READ))


SIDEBAR: tuple[SidebarEntry, ...] = (
    SidebarEntry("Tenants", "/dashboard/tenants", _read(Resource.TENANTS)),
    SidebarEntry("Categories", "/dashboard/categories", _read(Resource.CATEGORIES)),
    SidebarEntry("Products & Services", "/dashboard/products", _read(Resource.PRODUCTS)),
    SidebarEntry("Vendors", "/dashboard/vendors", _read(Resource.VENDORS)),
    SidebarEntry("Affiliates", "/dashboard/affiliates", _read(Resource.AFFILIATES)),
    SidebarEntry("Delivery Partners", "/dashboard/delivery-partners", _read(Resource.DELIVERY_PARTNERS)),
    SidebarEntry(
        "Orders",
        "/dashboard/orders",
        _read(Resource.ORDERS),
        children=(
            SidebarEntry("Deliveries", "/dashboard/orders/deliveries", _read(Resource.DELIVERIES)),
            SidebarEntry("Refunds", "/dashboard/orders/refunds", _read(Resource.REFUNDS)),
            SidebarEntry("Transactions", "/dashboard/orders/transactions", _read(Resource.TRANSACTIONS)),
        ),
    ),
    SidebarEntry("Rewards & Referrals", "/dashboard/rewards", _read(Resource.REWARDS)),
    SidebarEntry(
        "Loans",
        "/dashboard/loans/requests",
        _read(Resource.LOANS),
        children=(
            SidebarEntry("Providers", "/dashboard/loans/providers", _read(Resource.LOANS)),
            SidebarEntry("Products", "/dashboard/loans/products", _read(Resource.LOANS)),
        ),
    ),
    SidebarEntry(
        "Marketplace Settings",
        "/dashboard/tenants/marketplace",
        Can(permission=permission(Resource.SETTINGS, Action.UPDATE), role=Role.SUPER.value),
    ),
    SidebarEntry("Users", "/dashboard/auth/users", _read(Resource.USERS)),
    SidebarEntry("User Roles", "/dashboard/auth/roles", _read(Resource.ROLES)),
)


def render_sidebar(resolver: AccessResolver, entries: tuple[SidebarEntry, ...] = SIDEBAR) -> list[dict]:
    """Render each entry through its guard; denied entries are dropped."""
    rendered = []
    for entry in entries:
        item = entry.guard.render(
            resolver,
            lambda entry=entry: {
                "title": entry.title,
                "url": entry.url,
                "items": render_sidebar(resolver, entry.children),
            },
        )
        if item is not None:
            rendered.append(item)
    return rendered


def dashboard_for(role: Role) -> dict:
    """Dashboard descriptor for each console role."""
    match role:
        case Role.SUPER:
            return {
                "role": role,
                "dashboard": "super_owner",
                "title": "Super Owner Dashboard",
                "widgets": ["tenants", "revenue", "vendors", "orders"],
            }
        case Role.ADMIN:
            return {
                "role": role,
                "dashboard": "admin",
                "title": "Admin Dashboard",
                "widgets": ["revenue", "vendors", "orders", "products"],
            }
        case Role.SUB_ADMIN:
            return {
                "role": role,
                "dashboard": "sub_admin",
                "title": "Sub Admin Dashboard",
                "widgets": ["orders", "products", "deliveries"],
            }
        case Role.SUPPORT:
            return {
                "role": role,
                "dashboard": "support",
                "title": "Support Dashboard",
                "widgets": ["orders", "refunds", "tickets"],
            }
        case _:
            assert_never(role)


@router.get("", response_model=DashboardResponse)
@requires(None)
async def dashboard(context: AuthorizationContext = Depends(get_authorization_context)):
    """
    Dashboard for the principal's role.

    Visible to every signed-in principal once permissions have resolved.
    """
    principal = context.principal
    if principal is None or principal.role is None:
        raise ForbiddenException("Dashboard not available for your role")
    return dashboard_for(principal.role)


@router.get("/navigation", response_model=NavigationResponse)
async def navigation(resolver: AccessResolver = Depends(get_access_resolver)):
    """
    Sidebar entries the principal may open.

    While permissions load the list is empty and `loading` is true.
    """
    return {"loading": resolver.is_loading, "items": render_sidebar(resolver)}
