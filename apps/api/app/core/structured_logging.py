"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    tenant_id: str | None = None,
    tick_id: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    channel: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (ids only, never contact details)."""
    context: dict[str, Any] = {}
    if tenant_id:
        context["tenant_id"] = tenant_id
    if tick_id:
        context["tick_id"] = tick_id
    if entity_type:
        context["entity_type"] = entity_type
    if entity_id:
        context["entity_id"] = entity_id
    if channel:
        context["channel"] = channel
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
