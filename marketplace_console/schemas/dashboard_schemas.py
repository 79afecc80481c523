from pydantic import BaseModel
from marketplace_console.models.role import Role


class DashboardResponse(BaseModel):
    """Role dashboard descriptor"""

    role: Role
    dashboard: str
    title: str
    widgets: list[str]


class NavItem(BaseModel):
    title: str
    url: str
    items: list["NavItem"] = []


class NavigationResponse(BaseModel):
    """Sidebar entries the principal may see"""

    loading: bool
    items: list[NavItem]


class PageResponse(BaseModel):
    """Console page descriptor"""

    page: str
    title: str
    tenant_id: str | None = None
    resource_id: str | None = None
