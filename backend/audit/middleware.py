from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin

from .context import build_audit_context


class AuditContextMiddleware(MiddlewareMixin):
    """Attach client IP, user agent and request id for later audit writes."""

    def process_request(self, request):
        request.audit_context = build_audit_context(request)
