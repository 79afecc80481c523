from fastapi import APIRouter, BackgroundTasks, Depends, status

from marketplace_console.authorization.context import AuthorizationContext, AuthorizationRegistry
from marketplace_console.authorization.resolver import AccessResolver
from marketplace_console.dependencies import (
    get_access_resolver,
    get_access_token,
    get_authorization_context,
    get_principal,
    get_registry,
    get_token_claims,
)
from marketplace_console.models.principal import Principal
from marketplace_console.schemas.session_schemas import (
    AccessCheckResponse,
    PermissionStateResponse,
    SessionResponse,
    SignOutResponse,
    TenantSwitchRequest,
)

router = APIRouter()


def _session_response(context: AuthorizationContext) -> dict:
    return {"principal": context.principal, "status": context.store.status}


def _permission_state(context: AuthorizationContext) -> dict:
    store = context.store
    principal = store.principal
    return {
        "status": store.status,
        "loading": store.is_loading,
        "user_id": principal.id if principal else None,
        "tenant_id": store.tenant_id,
        "role": principal.role if principal else None,
        "permissions": sorted(context.resolver.permissions),
        "error": store.error,
    }


@router.post("", response_model=SessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def sign_in(
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    access_token: str = Depends(get_access_token),
    claims: dict = Depends(get_token_claims),
    registry: AuthorizationRegistry = Depends(get_registry),
):
    """
    Open a console session for the token's principal.

    Any previous session of the same principal is torn down. The session
    ends when the token expires.
    Permissions load in the background; poll
    `GET /api/session/permissions` until the status leaves `loading`.
    """
    context = await registry.open(principal, access_token, expires_at=float(claims["exp"]))
    background_tasks.add_task(context.load_permissions)
    return _session_response(context)


@router.put("/tenant", response_model=SessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def switch_tenant(
    tenant_switch: TenantSwitchRequest,
    background_tasks: BackgroundTasks,
    context: AuthorizationContext = Depends(get_authorization_context),
):
    """
    Switch the session to another tenant.

    Grants from the previous tenant are dropped immediately; a response for
    the previous tenant that arrives later is discarded.
    """
    context.switch_tenant(tenant_switch.tenant_id)
    background_tasks.add_task(context.load_permissions)
    return _session_response(context)


@router.get("/permissions", response_model=PermissionStateResponse)
async def get_permissions(context: AuthorizationContext = Depends(get_authorization_context)):
    """Current permission set, loading state and last fetch error."""
    return _permission_state(context)


@router.post("/permissions/refresh", response_model=PermissionStateResponse)
async def refresh_permissions(context: AuthorizationContext = Depends(get_authorization_context)):
    """
    Reload permissions, bypassing the cache.

    This is the retry path after a failed fetch.
    """
    await context.load_permissions(refresh=True)
    return _permission_state(context)


@router.get("/access", response_model=AccessCheckResponse)
async def check_access(
    permission: str | None = None,
    role: str | None = None,
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Probe whether the caller satisfies a permission and/or role requirement."""
    return {"allowed": resolver.can_access(permission, role), "loading": resolver.is_loading}


@router.delete("", response_model=SignOutResponse)
async def sign_out(
    principal: Principal = Depends(get_principal),
    registry: AuthorizationRegistry = Depends(get_registry),
):
    """Close the session and wipe its permissions."""
    await registry.close(principal.id)
    return {"message": "Signed out"}
