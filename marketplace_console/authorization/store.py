"""Tenant-scoped permission store for one console session."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum as PyEnum

from marketplace_console.authorization.permission_source import PermissionSource
from marketplace_console.core.exceptions import AuthorizationContextError, PermissionFetchError
from marketplace_console.models.principal import Principal

log = logging.getLogger(__name__)


class StoreStatus(str, PyEnum):
    """
    Lifecycle of the active permission set.

    - SIGNED_OUT: No principal, every check denies, nothing is loading
    - UNKNOWN: Principal set but no fetch completed for the current context
    - LOADING: Fetch in flight
    - READY: Permission set resolved for (principal, tenant)
    - ERROR: Last fetch failed, set is empty until a retry succeeds
    """

    SIGNED_OUT = "signed_out"
    UNKNOWN = "unknown"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class PermissionSet:
    """Resolved grants for one principal within one tenant."""

    user_id: str
    tenant_id: str | None
    grants: frozenset[str]

    def __contains__(self, tag: str) -> bool:
        return tag in self.grants


class PermissionStore:
    """
    Owns the permission set and its fetch lifecycle.

    Only the store mutates the set. Every context change (``set_user``, a new
    ``fetch_permissions``, ``clear_permissions``) bumps ``generation``; a
    fetch commits its result only if the generation it started with is still
    current, so the latest request always wins.
    """

    def __init__(self, source: PermissionSource, *, cache_ttl: float = 0):
        self.source = source
        self.cache_ttl = cache_ttl

        self._principal: Principal | None = None
        self._tenant_id: str | None = None
        self._permissions: PermissionSet | None = None
        self._status = StoreStatus.SIGNED_OUT
        self._error: str | None = None
        self._generation = 0
        self._cache: dict[tuple[str, str | None], tuple[frozenset[str], float]] = {}

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def tenant_id(self) -> str | None:
        return self._tenant_id

    @property
    def permissions(self) -> PermissionSet | None:
        return self._permissions

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return self._status in (StoreStatus.UNKNOWN, StoreStatus.LOADING)

    def set_user(self, principal: Principal | None) -> None:
        """Replace the principal and invalidate the current permission set."""
        self._generation += 1
        self._principal = principal
        self._tenant_id = principal.tenant_id if principal else None
        self._permissions = None
        self._error = None
        self._status = StoreStatus.UNKNOWN if principal else StoreStatus.SIGNED_OUT
        log.info(
            "permissions.user_set user_id=%s tenant_id=%s generation=%s",
            principal.id if principal else None,
            self._tenant_id,
            self._generation,
        )

    def clear_permissions(self) -> None:
        """Wipe principal, set, error and cache at session end."""
        self._generation += 1
        self._principal = None
        self._tenant_id = None
        self._permissions = None
        self._error = None
        self._cache.clear()
        self._status = StoreStatus.SIGNED_OUT
        log.info("permissions.cleared generation=%s", self._generation)

    async def fetch_permissions(
        self, user_id: str, tenant_id: str | None = None, *, refresh: bool = False
    ) -> None:
        """
        Load grants for ``user_id`` within ``tenant_id``.

        ``tenant_id`` defaults to the principal's tenant; a different value
        switches the store's tenant context. The previous set is discarded
        before the request starts. A failure of any kind leaves the store in
        ``ERROR`` with an empty set and the cause kept in ``error``. ``refresh`` skips the response cache.

        Raises:
            AuthorizationContextError: If ``user_id`` is not the active principal
        """
        if not user_id:
            self._generation += 1
            self._commit(PermissionSet(user_id="", tenant_id=tenant_id, grants=frozenset()))
            return

        if self._principal is None or self._principal.id != user_id:
            raise AuthorizationContextError(
                f"Cannot fetch permissions for {user_id!r}: not the active principal"
            )

        if tenant_id is None:
            tenant_id = self._tenant_id

        self._generation += 1
        generation = self._generation
        self._tenant_id = tenant_id
        if tenant_id != self._principal.tenant_id:
            self._principal = self._principal.with_tenant(tenant_id)
        self._permissions = None
        self._error = None

        cache_key = (user_id, tenant_id)
        if not refresh:
            cached = self._cached(cache_key)
            if cached is not None:
                log.debug("permissions.cache_hit user_id=%s tenant_id=%s", user_id, tenant_id)
                self._commit(PermissionSet(user_id=user_id, tenant_id=tenant_id, grants=cached))
                return

        self._status = StoreStatus.LOADING
        log.info(
            "permissions.fetch_started user_id=%s tenant_id=%s generation=%s",
            user_id,
            tenant_id,
            generation,
        )

        try:
            grants = await self.source.fetch(user_id, tenant_id)
        except PermissionFetchError as e:
            self._fail(generation, user_id, tenant_id, e)
            return
        except Exception as e:
            log.exception("permissions.fetch_crashed user_id=%s tenant_id=%s", user_id, tenant_id)
            self._fail(generation, user_id, tenant_id, e)
            return

        if generation != self._generation:
            log.info(
                "permissions.stale_response_discarded user_id=%s tenant_id=%s generation=%s current=%s",
                user_id,
                tenant_id,
                generation,
                self._generation,
            )
            return

        if self.cache_ttl > 0:
            self._cache[cache_key] = (grants, time.monotonic() + self.cache_ttl)
        self._commit(PermissionSet(user_id=user_id, tenant_id=tenant_id, grants=grants))
        log.info(
            "permissions.fetch_succeeded user_id=%s tenant_id=%s count=%s",
            user_id,
            tenant_id,
            len(grants),
        )

    def _fail(self, generation: int, user_id: str, tenant_id: str | None, error: Exception) -> None:
        if generation != self._generation:
            log.info("permissions.stale_failure_discarded generation=%s current=%s", generation, self._generation)
            return
        self._permissions = None
        self._error = str(error) or type(error).__name__
        self._status = StoreStatus.ERROR
        log.warning("permissions.fetch_failed user_id=%s tenant_id=%s error=%s", user_id, tenant_id, self._error)

    def _commit(self, permissions: PermissionSet) -> None:
        self._permissions = permissions
        self._error = None
        self._status = StoreStatus.READY

    def _cached(self, key: tuple[str, str | None]) -> frozenset[str] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        grants, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._cache[key]
            return None
        return grants
