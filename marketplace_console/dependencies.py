from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from marketplace_console.authorization.context import AuthorizationContext, AuthorizationRegistry
from marketplace_console.authorization.permission_source import RoleDefaultPermissionSource
from marketplace_console.authorization.resolver import AccessResolver
from marketplace_console.authorization.store import PermissionStore
from marketplace_console.core.exceptions import AuthorizationContextError, UnauthorizedException
from marketplace_console.core.security import decode_jwt
from marketplace_console.models.principal import Principal

security = HTTPBearer(auto_error=False)


async def get_access_token(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_token_claims(token: str = Depends(get_access_token)) -> dict:
    """
    FastAPI dependency to validate the identity provider JWT.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using shared SECRET_KEY

    Raises:
        HTTPException 401: If token invalid or expired
    """
    try:
        return decode_jwt(token)

    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_principal(claims: dict = Depends(get_token_claims)) -> Principal:
    """Build the Principal from 'sub', name, email, role(s) and tenant claims."""
    return Principal.from_claims(claims)


def get_registry(request: Request) -> AuthorizationRegistry:
    """
    Registry of open authorization contexts.

    Raises:
        AuthorizationContextError: If the application was started without one
    """
    registry = getattr(request.app.state, "authorization", None)
    if registry is None:
        raise AuthorizationContextError("Authorization registry is not configured on the application")
    return registry


async def get_authorization_context(
    principal: Principal = Depends(get_principal),
    registry: AuthorizationRegistry = Depends(get_registry),
) -> AuthorizationContext:
    """
    Open context for the caller's console session.

    Raises:
        UnauthorizedException: If the caller has not signed in to the console
    """
    context = registry.get(principal.id)
    if context is None:
        raise UnauthorizedException("No open console session")
    return context


async def get_access_resolver(
    principal: Principal = Depends(get_principal),
    registry: AuthorizationRegistry = Depends(get_registry),
) -> AccessResolver:
    """
    Resolver for the caller's session.

    A caller without an open session gets a signed-out resolver: nothing is
    loading and every gated surface is denied.
    """
    context = registry.get(principal.id)
    if context is None:
        return AccessResolver(PermissionStore(RoleDefaultPermissionSource(None)))
    return context.resolver


async def get_current_tenant_id(
    principal: Principal = Depends(get_principal),
    registry: AuthorizationRegistry = Depends(get_registry),
) -> str | None:
    """Tenant of the caller's session, falling back to the token's tenant claim."""
    context = registry.get(principal.id)
    if context is None:
        return principal.tenant_id
    return context.store.tenant_id
