"""Declarative and imperative guards built on the access resolver."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Depends, Request

from marketplace_console.authorization.resolver import AccessDecision, AccessResolver
from marketplace_console.authorization.views import forbidden_view, loading_view
from marketplace_console.dependencies import get_access_resolver
from marketplace_console.models.requirement import AuthorizationRequirement, RequirementConfig

log = logging.getLogger(__name__)

RESOLVER_PARAM = "authz_resolver"
REQUEST_PARAM = "authz_request"


@dataclass(frozen=True)
class Can:
    """
    A render region shown only when the requirement holds.

    ``render`` returns the children when allowed, ``fallback`` when denied,
    and ``None`` while permissions are loading so neither ever flashes.
    Callable children are only called once access is allowed.
    """

    permission: str | None = None
    role: str | None = None
    fallback: Any = None

    @property
    def requirement(self) -> AuthorizationRequirement:
        return AuthorizationRequirement.normalize({"permission": self.permission, "role": self.role})

    def render(self, resolver: AccessResolver, children: Any) -> Any:
        decision = resolver.decide(self.requirement)
        if decision is AccessDecision.LOADING:
            return None
        if decision is AccessDecision.ALLOWED:
            return children() if callable(children) else children
        return self.fallback


def with_authorization(component: Callable[..., Any], config: RequirementConfig) -> Callable[..., Any]:
    """
    Wrap a console page so only authorized principals reach it.

    ``config`` is a bare permission tag or ``{"permission": ..., "role": ...}``.
    The returned page accepts the same arguments as ``component`` plus the
    caller's resolver (injected by FastAPI). Per call it renders the loading
    view, the forbidden view, or ``component`` with its arguments untouched;
    ``component`` is never invoked unless access is allowed.
    """
    requirement = AuthorizationRequirement.normalize(config)
    is_async = inspect.iscoroutinefunction(component)
    signature = inspect.signature(component, eval_str=True)
    display_name = getattr(component, "__name__", "Component")

    async def authorized(*args, **kwargs):
        resolver: AccessResolver = kwargs.pop(RESOLVER_PARAM)
        request: Request | None = kwargs.pop(REQUEST_PARAM, None)

        decision = resolver.decide(requirement)
        if decision is AccessDecision.LOADING:
            return loading_view()
        if decision is AccessDecision.DENIED:
            log.info(
                "access.forbidden page=%s permission=%s role=%s",
                display_name,
                requirement.permission,
                requirement.role,
            )
            back = request.headers.get("referer") if request is not None else None
            return forbidden_view(back=back)

        if is_async:
            return await component(*args, **kwargs)
        return component(*args, **kwargs)

    authorized.__signature__ = _with_guard_params(signature)
    authorized.__name__ = f"with_authorization({display_name})"
    authorized.__qualname__ = authorized.__name__
    authorized.__doc__ = component.__doc__
    authorized.__module__ = component.__module__
    authorized.requirement = requirement
    return authorized


def requires(config: RequirementConfig) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator form of ``with_authorization``."""

    def decorator(component: Callable[..., Any]) -> Callable[..., Any]:
        return with_authorization(component, config)

    return decorator


def _with_guard_params(signature: inspect.Signature) -> inspect.Signature:
    params = [p for p in signature.parameters.values() if p.kind is not inspect.Parameter.VAR_KEYWORD]
    var_keyword = [p for p in signature.parameters.values() if p.kind is inspect.Parameter.VAR_KEYWORD]
    guard_params = [
        inspect.Parameter(
            RESOLVER_PARAM,
            inspect.Parameter.KEYWORD_ONLY,
            default=Depends(get_access_resolver),
            annotation=AccessResolver,
        ),
        inspect.Parameter(
            REQUEST_PARAM,
            inspect.Parameter.KEYWORD_ONLY,
            default=None,
            annotation=Request,
        ),
    ]
    return signature.replace(parameters=params + guard_params + var_keyword)
