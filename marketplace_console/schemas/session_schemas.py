from pydantic import BaseModel, Field
from marketplace_console.authorization.store import StoreStatus
from marketplace_console.models.role import Role


class PrincipalResponse(BaseModel):
    """Signed-in principal"""

    id: str
    name: str
    email: str
    role: Role | None
    tenant_id: str | None

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Session state after sign-in or tenant switch"""

    principal: PrincipalResponse
    status: StoreStatus


class TenantSwitchRequest(BaseModel):
    """Move the session to another tenant"""

    tenant_id: str = Field(..., min_length=1, description="Tenant to switch to")


class PermissionStateResponse(BaseModel):
    """Current permission set and its loading state"""

    status: StoreStatus
    loading: bool
    user_id: str | None
    tenant_id: str | None
    role: Role | None
    permissions: list[str]
    error: str | None


class AccessCheckResponse(BaseModel):
    """Outcome of a can-access probe"""

    allowed: bool
    loading: bool


class SignOutResponse(BaseModel):
    message: str
