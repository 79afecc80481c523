"""Console pages, each gated by ``with_authorization``."""

from typing import Callable

from fastapi import APIRouter, Depends

from marketplace_console.authorization.guards import requires, with_authorization
from marketplace_console.dependencies import get_current_tenant_id
from marketplace_console.models.permission import Action, Resource, permission
from marketplace_console.models.requirement import RequirementConfig
from marketplace_console.models.role import Role
from marketplace_console.schemas.dashboard_schemas import PageResponse

router = APIRouter()


def _page_name(path: str) -> str:
    return path.strip("/").replace("{resource_id}", "detail").replace("-", "_").replace("/", "_") + "_page"


def _page(path: str, title: str) -> Callable:
    """Build the page body; detail pages receive the path's resource id unchanged."""
    name = _page_name(path)

    if "{resource_id}" in path:

        async def page(resource_id: str, tenant_id: str | None = Depends(get_current_tenant_id)):
            return {"page": name, "title": title, "tenant_id": tenant_id, "resource_id": resource_id}

    else:

        async def page(tenant_id: str | None = Depends(get_current_tenant_id)):
            return {"page": name, "title": title, "tenant_id": tenant_id}

    page.__name__ = name
    return page


def register_page(path: str, title: str, config: RequirementConfig) -> None:
    router.add_api_route(
        path,
        with_authorization(_page(path, title), config),
        methods=["GET"],
        response_model=PageResponse,
        name=_page_name(path),
    )


def register_resource_pages(base: str, title: str, resource: Resource) -> None:
    """List, add, detail and edit pages for one resource."""
    register_page(base, title, permission(resource, Action.READ))
    register_page(f"{base}/add", f"Add {title}", permission(resource, Action.CREATE))
    register_page(f"{base}/{{resource_id}}", title, permission(resource, Action.READ))
    register_page(f"{base}/{{resource_id}}/edit", f"Edit {title}", permission(resource, Action.UPDATE))


# Declared before the generic tenant detail route so "marketplace" is not read as an id.
@router.get("/tenants/marketplace", response_model=PageResponse)
@requires({"permission": permission(Resource.SETTINGS, Action.UPDATE), "role": Role.SUPER})
async def marketplace_settings_page(tenant_id: str | None = Depends(get_current_tenant_id)):
    """Marketplace-wide settings, super owners only."""
    return {"page": "marketplace_settings_page", "title": "Marketplace Settings", "tenant_id": tenant_id}


register_resource_pages("/tenants", "Tenants", Resource.TENANTS)
register_resource_pages("/categories", "Categories", Resource.CATEGORIES)
register_resource_pages("/products", "Products & Services", Resource.PRODUCTS)
register_resource_pages("/vendors", "Vendors", Resource.VENDORS)
register_resource_pages("/affiliates", "Affiliates", Resource.AFFILIATES)
register_resource_pages("/delivery-partners", "Delivery Partners", Resource.DELIVERY_PARTNERS)
register_resource_pages("/loans/providers", "Loan Providers", Resource.LOANS)
register_resource_pages("/loans/products", "Loan Products", Resource.LOANS)
register_resource_pages("/auth/users", "Users", Resource.USERS)
register_resource_pages("/auth/roles", "User Roles", Resource.ROLES)

register_page("/orders", "Orders", permission(Resource.ORDERS, Action.READ))
register_page("/orders/deliveries", "Deliveries", permission(Resource.DELIVERIES, Action.READ))
register_page("/orders/refunds", "Refunds", permission(Resource.REFUNDS, Action.READ))
register_page("/orders/transactions", "Transactions", permission(Resource.TRANSACTIONS, Action.READ))
register_page("/orders/{resource_id}", "Order", permission(Resource.ORDERS, Action.READ))
register_page("/loans/requests", "Loan Requests", permission(Resource.LOANS, Action.READ))
register_page("/rewards", "Rewards & Referrals", permission(Resource.REWARDS, Action.READ))
