"""Where a session's permission grants come from."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from marketplace_console.authorization.catalog import default_permissions_for
from marketplace_console.core.exceptions import PermissionFetchError
from marketplace_console.models.role import Role

log = logging.getLogger(__name__)


class PermissionSource(Protocol):
    async def fetch(self, user_id: str, tenant_id: str | None) -> frozenset[str]:
        """Return the granted permission tags, or raise ``PermissionFetchError``."""
        ...

    async def aclose(self) -> None:
        ...


class HttpPermissionSource:
    """
    Loads grants from the tenant-scoped permissions API.

    Sends ``GET <path>`` with the tenant header and the caller's bearer token.
    Any transport error, timeout, non-2xx status, or unexpected payload is
    raised as ``PermissionFetchError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/auth/roles/users/{user_id}/permissions",
        tenant_header: str = "X-Tenant-ID",
        access_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.tenant_header = tenant_header
        self.access_token = access_token
        self.session = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, user_id: str, tenant_id: str | None) -> frozenset[str]:
        url = self.base_url + self.path.format(user_id=user_id)
        headers = {}
        if tenant_id:
            headers[self.tenant_header] = tenant_id
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            resp = await self.session.get(url, headers=headers)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as e:
            raise PermissionFetchError(f"Permissions request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise PermissionFetchError(
                f"Permissions request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PermissionFetchError(f"Permissions request failed: {e}") from e
        except httpx.InvalidURL as e:
            raise PermissionFetchError(f"Permissions request URL is invalid: {e}") from e
        except ValueError as e:
            raise PermissionFetchError("Permissions response is not valid JSON") from e

        return parse_grants(payload)

    async def aclose(self) -> None:
        await self.session.aclose()


class RoleDefaultPermissionSource:
    """Resolves grants from the catalog's role defaults, used when no permissions API is configured."""

    def __init__(self, role: Role | None):
        self.role = role

    async def fetch(self, user_id: str, tenant_id: str | None) -> frozenset[str]:
        return default_permissions_for(self.role)

    async def aclose(self) -> None:
        return None


def parse_grants(payload: Any) -> frozenset[str]:
    """
    Extract granted tags from a permissions API payload.

    Accepted shapes: ``{"data": [...]}``, a bare list of tags, or a mapping of
    tag to granted flag (under ``data`` or at the top level).
    """
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]

    if isinstance(payload, list):
        if not all(isinstance(tag, str) for tag in payload):
            raise PermissionFetchError("Permissions payload contains non-string entries")
        return frozenset(payload)

    if isinstance(payload, dict):
        if not all(isinstance(flag, bool) for flag in payload.values()):
            raise PermissionFetchError("Permissions mapping values must be booleans")
        return frozenset(str(tag) for tag, granted in payload.items() if granted)

    log.warning("permissions.malformed_payload type=%s", type(payload).__name__)
    raise PermissionFetchError("Unexpected permissions payload")
