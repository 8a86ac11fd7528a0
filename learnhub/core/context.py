"""Per-request context carried through contextvars.

Every request handled by LearnHub gets a request ID, and once the bearer
token is verified the caller's user ID and role are attached too. Anything
running inside the request (services, the progress aggregator's callers,
the email sender) can read these values without them being threaded
through function arguments, and the logging processors pick them up
automatically.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
user_role_var: ContextVar[str | None] = ContextVar("user_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_OPTIONAL_VARS: dict[str, ContextVar[str | None]] = {
    "user_id": user_id_var,
    "user_role": user_role_var,
    "trace_id": trace_id_var,
    "correlation_id": correlation_id_var,
}


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none is given.

    Returns:
        The request ID now in effect.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_user_role() -> str | None:
    return user_role_var.get()


def set_user_role(role: str | None) -> None:
    user_role_var.set(role)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Return the populated context values as a dictionary.

    Unset values are omitted so they do not show up as nulls in log lines.
    """
    context: dict[str, Any] = {}
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    for name, var in _OPTIONAL_VARS.items():
        value = var.get()
        if value:
            context[name] = value
    return context


def clear_context() -> None:
    """Reset every context variable.

    Called by the request middleware once the response has been sent.
    """
    request_id_var.set("")
    for var in _OPTIONAL_VARS.values():
        var.set(None)


class RequestContext:
    """Context manager that scopes context values to a block.

    Useful for background jobs (bulk enrollment, CSV imports) that run
    outside the HTTP middleware:

        with RequestContext(user_id=admin_id):
            await service.bulk_enroll(...)
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | UUID | None = None,
        user_role: str | None = None,
        trace_id: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self.request_id = request_id
        self._values: dict[str, str | None] = {
            "user_id": str(user_id) if user_id is not None else None,
            "user_role": user_role,
            "trace_id": trace_id,
            "correlation_id": correlation_id,
        }
        self._request_token: Token[str] | None = None
        self._tokens: list[tuple[ContextVar[str | None], Token[str | None]]] = []

    def __enter__(self) -> "RequestContext":
        self._request_token = request_id_var.set(
            self.request_id or generate_request_id()
        )
        for name, value in self._values.items():
            if value is not None:
                var = _OPTIONAL_VARS[name]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *_: object) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
        if self._request_token is not None:
            request_id_var.reset(self._request_token)
            self._request_token = None
