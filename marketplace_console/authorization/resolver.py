"""Access decisions against the session's permission store."""

from __future__ import annotations

import logging
from enum import Enum as PyEnum

from marketplace_console.authorization.catalog import is_valid_permission, is_valid_role
from marketplace_console.authorization.store import PermissionStore, StoreStatus
from marketplace_console.models.permission import WILDCARD
from marketplace_console.models.requirement import AuthorizationRequirement, RequirementConfig

log = logging.getLogger(__name__)


class AccessDecision(str, PyEnum):
    LOADING = "loading"
    ALLOWED = "allowed"
    DENIED = "denied"


class AccessResolver:
    """
    Answers "can the current principal satisfy this requirement".

    Reads the store on every call and never keeps a copy of the permission
    set, so a tenant switch is visible immediately. Outcomes are booleans or
    ``AccessDecision`` values; nothing here raises for a denial.
    """

    def __init__(self, store: PermissionStore):
        self.store = store

    @property
    def is_loading(self) -> bool:
        return self.store.is_loading

    @property
    def permissions(self) -> frozenset[str]:
        resolved = self.store.permissions
        if self.store.status != StoreStatus.READY or resolved is None:
            return frozenset()
        return resolved.grants

    def has_permission(self, permission: str) -> bool:
        """Closed world: only explicit grants (or an explicit wildcard) pass."""
        if not is_valid_permission(permission):
            return False
        grants = self.permissions
        return permission in grants or WILDCARD in grants

    def has_role(self, role: str) -> bool:
        if not is_valid_role(role):
            return False
        principal = self.store.principal
        return principal is not None and principal.role is not None and principal.role == role

    def can_access(self, permission: str | None = None, role: str | None = None) -> bool:
        """
        Check a permission and/or role requirement.

        Both must hold when both are given. With neither given the gate is a
        no-op and passes whenever permissions are not loading.
        """
        decision = self.decide({"permission": permission, "role": role})
        return decision == AccessDecision.ALLOWED

    def decide(self, requirement: RequirementConfig) -> AccessDecision:
        requirement = AuthorizationRequirement.normalize(requirement)

        if self.store.is_loading:
            return AccessDecision.LOADING

        if requirement.is_empty:
            return AccessDecision.ALLOWED

        if self.store.status != StoreStatus.READY:
            return AccessDecision.DENIED

        if requirement.role is not None and not self.has_role(requirement.role):
            log.debug("access.denied reason=role required=%s", requirement.role)
            return AccessDecision.DENIED

        if requirement.permission is not None and not self.has_permission(requirement.permission):
            log.debug("access.denied reason=permission required=%s", requirement.permission)
            return AccessDecision.DENIED

        return AccessDecision.ALLOWED
