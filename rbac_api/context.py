"""Per-request context: correlation id, caller identity and HTTP details."""
from __future__ import annotations

import time
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any

from rbac_api.config import get_settings


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str
    user_id: str
    user_name: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_path: str | None = None
    request_method: str | None = None
    started_at: float | None = None
    # ASGI scope of the request; the router adds the matched route to it.
    scope: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    def elapsed_ms(self) -> int | None:
        if self.started_at is None:
            return None
        return round((time.perf_counter() - self.started_at) * 1000)

    def success_status(self) -> int | None:
        """Status code the matched route answers with when the request succeeds."""

        route = (self.scope or {}).get("route")
        if route is None:
            return None
        return getattr(route, "status_code", None) or 200


_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def set_request_context(context: RequestContext) -> Token:
    return _request_context.set(context)


def reset_request_context(token: Token) -> None:
    _request_context.reset(token)


def get_request_context() -> RequestContext:
    """Return the active request context, or a system context outside of requests."""

    context = _request_context.get()
    if context is None:
        return RequestContext(correlation_id=new_correlation_id(), user_id=get_settings().DEFAULT_ACTOR)
    return context


def current_actor() -> str:
    return get_request_context().user_id


def current_correlation_id() -> str | None:
    context = _request_context.get()
    return context.correlation_id if context else None


__all__ = [
    "RequestContext",
    "current_actor",
    "current_correlation_id",
    "get_request_context",
    "new_correlation_id",
    "reset_request_context",
    "set_request_context",
]
