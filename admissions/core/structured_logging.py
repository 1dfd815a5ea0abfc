"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    counselor_id: UUID | str | None = None,
    lead_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
    user_id: UUID | str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with ids only (never names or contact details)."""
    context: dict[str, Any] = {}
    if counselor_id:
        context["counselor_id"] = str(counselor_id)
    if lead_id:
        context["lead_id"] = str(lead_id)
    if session_id:
        context["session_id"] = str(session_id)
    if user_id:
        context["user_id"] = str(user_id)
    if request_id:
        context["request_id"] = request_id
    return context
