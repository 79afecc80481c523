import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PERMISSIONS_API_URL", "")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from jose import jwt

from marketplace_console.authorization.context import AuthorizationRegistry
from marketplace_console.config import settings
from marketplace_console.core.exceptions import PermissionFetchError
from marketplace_console.models.principal import Principal
from marketplace_console.models.role import Role
# Import FastAPI app AFTER settings are in the environment
from marketplace_console.main import app

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


class FakePermissionSource:
    """
    In-memory permissions API.

    ``grants`` maps (user_id, tenant_id) to granted tags; ``failures`` holds
    the tenants whose requests fail.
    """

    def __init__(self, grants: dict | None = None, failures: set | None = None):
        self.grants = grants if grants is not None else {}
        self.failures = failures if failures is not None else set()
        self.calls: list[tuple[str, str | None]] = []
        self.closed = False

    async def fetch(self, user_id: str, tenant_id: str | None) -> frozenset[str]:
        self.calls.append((user_id, tenant_id))
        if tenant_id in self.failures:
            raise PermissionFetchError("Permissions request failed with status 503")
        return frozenset(self.grants.get((user_id, tenant_id), ()))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def permission_source():
    """Shared fake permissions API for every session opened in a test"""
    return FakePermissionSource()


@pytest.fixture
def registry(permission_source):
    """Fresh authorization registry backed by the fake permissions API"""
    return AuthorizationRegistry(lambda principal, token: permission_source)


@pytest.fixture(scope="function")
def client(registry):
    """FastAPI test client with an isolated authorization registry"""
    original = app.state.authorization
    app.state.authorization = registry
    with TestClient(app) as test_client:
        yield test_client
    app.state.authorization = original


def create_test_token(
    user_id: str = "test-user-123",
    role: str | None = "admin",
    tenant_id: str | None = TENANT_A,
    expired: bool = False,
    **claims,
) -> str:
    """
    Generate identity provider JWT for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        role: Provider role claim (omitted when None)
        tenant_id: Tenant claim (omitted when None)
        expired: If True, create expired token
        **claims: Extra claims (e.g. roles=[...])

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {
        "sub": user_id,
        "name": "Test User",
        "email": f"{user_id}@example.com",
        "exp": exp,
        "iat": datetime.now(UTC),
        **claims,
    }
    if role is not None:
        payload["role"] = role
    if tenant_id is not None:
        payload["tenant_id"] = tenant_id

    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def auth_headers_for(**kwargs) -> dict:
    return {"Authorization": f"Bearer {create_test_token(**kwargs)}"}


@pytest.fixture
def auth_headers():
    """Authorization headers for an admin of tenant A"""
    return auth_headers_for()


@pytest.fixture
def super_headers():
    """Authorization headers for a super owner"""
    return auth_headers_for(user_id="super-user", role="super")


@pytest.fixture
def support_headers():
    """Authorization headers for a support agent"""
    return auth_headers_for(user_id="support-user", role="support")


@pytest.fixture
def admin_principal():
    return Principal(id="user-1", name="Ada Admin", email="ada@example.com", role=Role.ADMIN, tenant_id=TENANT_A)


@pytest.fixture
def super_principal():
    return Principal(id="user-2", name="Sam Super", email="sam@example.com", role=Role.SUPER, tenant_id=TENANT_A)


@pytest.fixture
def support_principal():
    return Principal(id="user-3", name="Sue Support", email="sue@example.com", role=Role.SUPPORT, tenant_id=TENANT_A)
