"""Per-request correlation id and log fields, carried in context variables.

Everything bound here is merged into each JSON log line, and the environment
monitor copies the correlation id onto records created without an explicit one.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

domain_context_var: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "domain_context", default={}
)


def get_correlation_id() -> str:
    """Empty string when no request is bound."""
    return correlation_id_var.get("")


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_domain_context() -> dict[str, Any]:
    return domain_context_var.get({})


def set_domain_context(context: dict[str, Any]) -> None:
    domain_context_var.set(context)


def update_domain_context(**kwargs: Any) -> None:
    """Add fields to the ones already bound in this context."""
    set_domain_context({**get_domain_context(), **kwargs})


@contextmanager
def correlation_context(correlation_id: str | None = None, **domain_fields: Any) -> Iterator[str]:
    """Bind ``correlation_id`` (a fresh uuid4 when omitted) and extra fields until exit."""
    active_id = correlation_id or generate_correlation_id()
    token_correlation = correlation_id_var.set(active_id)
    token_domain = domain_context_var.set({**get_domain_context(), **domain_fields})

    try:
        yield active_id
    finally:
        correlation_id_var.reset(token_correlation)
        domain_context_var.reset(token_domain)


@contextmanager
def request_context(
    *,
    endpoint: str | None = None,
    user_id: str | None = None,
    ip_address: str | None = None,
    correlation_id: str | None = None,
    **additional_fields: Any,
) -> Iterator[str]:
    """Bind the fields of an inbound request to every log line emitted inside.

    Args:
        endpoint: Request path
        user_id: Authenticated user, if any
        ip_address: Client address
        correlation_id: Upstream request id to reuse
        **additional_fields: Additional domain fields

    Yields:
        The active correlation ID.
    """
    fields = {
        key: value
        for key, value in (
            ("endpoint", endpoint),
            ("user_id", user_id),
            ("ip_address", ip_address),
        )
        if value is not None
    }
    fields.update(additional_fields)
    with correlation_context(correlation_id, **fields) as active_id:
        yield active_id


def get_log_context() -> dict[str, Any]:
    """Fields to merge into a log line: the correlation id (if any) and bound fields."""
    correlation_id = get_correlation_id()
    context: dict[str, Any] = {"correlation_id": correlation_id} if correlation_id else {}
    context.update(get_domain_context())
    return context


__all__ = [
    "correlation_id_var",
    "domain_context_var",
    "get_correlation_id",
    "set_correlation_id",
    "generate_correlation_id",
    "get_domain_context",
    "set_domain_context",
    "update_domain_context",
    "correlation_context",
    "request_context",
    "get_log_context",
]
