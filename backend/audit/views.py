from __future__ import annotations

from rest_framework import viewsets
from rest_framework.response import Response

from accounts.permissions import IsAdminRole
from assethub.errors import NotFoundError

from .ledger import AuditLedger, AuditLogFilters
from .serializers import AuditLogEntrySerializer, AuditLogQuerySerializer


class AuditLogViewSet(viewsets.ViewSet):
    """Read-only access to the audit ledger for administrators."""

    permission_classes = [IsAdminRole]

    def get_ledger(self) -> AuditLedger:
        return AuditLedger()

    def list(self, request):
        query = AuditLogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        filters = AuditLogFilters(
            user_id=params.get("user"),
            action=params.get("action"),
            resource_type=params.get("resource_type"),
            resource_id=params.get("resource_id"),
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
        )
        page = self.get_ledger().list(filters, page=params["page"], limit=params.get("limit"))
        return Response({
            "results": AuditLogEntrySerializer(page.entries, many=True).data,
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "has_next": page.has_next,
        })

    def retrieve(self, request, pk=None):
        entry = self.get_ledger().find_by_id(pk)
        if entry is None:
            raise NotFoundError("Audit log entry not found.")
        return Response(AuditLogEntrySerializer(entry).data)
