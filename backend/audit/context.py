"""Request metadata captured for audit entries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuditContext:
    ip_address: Optional[str] = None
    user_agent: str = ""
    request_id: str = ""

    def as_kwargs(self) -> dict:
        return {"ip_address": self.ip_address, "user_agent": self.user_agent}


EMPTY_CONTEXT = AuditContext()


def get_client_ip(request) -> Optional[str]:
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def build_audit_context(request) -> AuditContext:
    return AuditContext(
        ip_address=get_client_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT", "")[:512],
        request_id=request.headers.get("X-Request-ID", ""),
    )


def get_audit_context(request) -> AuditContext:
    """Return the context attached by the middleware, building it if absent."""

    if request is None:
        return EMPTY_CONTEXT
    context = getattr(request, "audit_context", None)
    return context or build_audit_context(request)
