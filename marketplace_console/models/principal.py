"""Authenticated principal as delivered by the identity provider."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from marketplace_console.authorization.catalog import parse_role
from marketplace_console.models.role import ROLE_PRIORITY, Role


@dataclass(frozen=True)
class Principal:
    """
    The signed-in console user.

    Owned by the session layer; the authorization engine only reads it.
    ``role`` is ``None`` when the provider reported no role the console
    recognises, which fails every role gate.
    """

    id: str
    name: str
    email: str
    role: Role | None
    tenant_id: str | None = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """
        Build a principal from identity provider claims.

        The role comes from ``active_profile_role``, then ``role``, then the
        highest priority entry of ``roles`` (plain strings or ``{"role": ...}``
        objects).
        """
        name = claims.get("name") or " ".join(
            part for part in (claims.get("first_name"), claims.get("last_name")) if part
        )
        role_tag = claims.get("active_profile_role") or claims.get("role")
        if role_tag:
            role = parse_role(str(role_tag))
        else:
            role = _primary_role(claims.get("roles") or [])

        tenant_id = claims.get("tenant_id")
        return cls(
            id=str(claims["sub"]),
            name=name or "",
            email=claims.get("email") or "",
            role=role,
            tenant_id=str(tenant_id) if tenant_id else None,
        )

    def with_tenant(self, tenant_id: str) -> "Principal":
        return replace(self, tenant_id=tenant_id)


def _primary_role(entries: list[Any]) -> Role | None:
    roles = set()
    for entry in entries:
        tag = entry.get("role") if isinstance(entry, Mapping) else entry
        if tag:
            role = parse_role(str(tag))
            if role is not None:
                roles.add(role)

    for role in ROLE_PRIORITY:
        if role in roles:
            return role
    return None
