"""Authorization requirement declared on a console page or region."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

RequirementConfig = Union[None, str, Mapping[str, Any], "AuthorizationRequirement"]


@dataclass(frozen=True)
class AuthorizationRequirement:
    """
    Conjunctive gate: both ``permission`` and ``role`` must hold when both are set.

    A requirement with neither set is a no-op gate that always passes once
    permissions have resolved. Reserve it for UI that is visible to every
    principal; never use it on a sensitive surface.
    """

    permission: str | None = None
    role: str | None = None

    @classmethod
    def normalize(cls, config: RequirementConfig) -> "AuthorizationRequirement":
        """
        Build a requirement from any accepted input shape.

        Accepts ``None``, a bare permission tag, a ``{"permission", "role"}``
        mapping, or an existing requirement. Tags are kept as given; unknown
        tags are denied by the resolver rather than rejected here.
        """
        if config is None:
            return cls()
        if isinstance(config, AuthorizationRequirement):
            return config
        if isinstance(config, str):
            return cls(permission=_tag(config))
        if isinstance(config, Mapping):
            return cls(permission=_tag(config.get("permission")), role=_tag(config.get("role")))
        raise TypeError(f"Unsupported authorization requirement: {config!r}")

    @property
    def is_empty(self) -> bool:
        return self.permission is None and self.role is None


def _tag(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)
