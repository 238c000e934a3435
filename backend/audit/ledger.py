"""Append-only audit ledger.

The ledger is the only writer of :class:`~audit.models.AuditLogEntry` rows.
It exposes ``append`` and read queries; there is no update or
delete operation. Write failures are re-raised as :class:`AuditWriteError`
so the caller's ``transaction.atomic()`` block rolls the business change
back together with the missing entry.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError as DjangoDatabaseError
from django.db import transaction

from assethub.errors import StorageError, ValidationError
from assets.models import Asset

from .metrics import AUDIT_APPEND_COUNT, AUDIT_APPEND_FAILURE_COUNT, AUDIT_APPEND_LATENCY
from .models import AuditAction, AuditLogEntry, ResourceType

logger = logging.getLogger(__name__)


class AuditWriteError(StorageError):
    """Raised when an audit entry could not be persisted."""

    code = "AUDIT_WRITE_FAILED"
    default_message = "The audit log could not be written; the operation was not applied."


@dataclass(frozen=True)
class AuditLogFilters:
    user_id: Optional[int] = None
    action: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


@dataclass(frozen=True)
class AuditLogPage:
    entries: List[AuditLogEntry]
    total: int
    page: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total


class AuditLedger:
    """Writes and reads audit entries on one database alias."""

    def __init__(self, using: Optional[str] = None):
        self.using = using or "default"

    def append(
        self,
        *,
        user,
        action: Union[AuditAction, str],
        resource_type: Union[ResourceType, str],
        resource_id: Any,
        metadata: Optional[Mapping[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLogEntry:
        """Persist one entry and return it with its generated id and timestamp."""

        action = _coerce_choice(AuditAction, action, "action")
        resource_type = _coerce_choice(ResourceType, resource_type, "resource_type")
        if user is None or getattr(user, "pk", None) is None:
            raise ValidationError("An audit entry needs a persisted acting user.", fields={"user": "required"})

        resource_id = None if resource_id is None else str(resource_id)
        entry = AuditLogEntry(
            user_id=user.pk,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            asset_id=self._linked_asset_id(resource_type, resource_id),
            metadata=_stored_form(metadata),
            ip_address=ip_address or None,
            user_agent=(user_agent or "")[:512],
        )

        started = time.perf_counter()
        try:
            with transaction.atomic(using=self.using):
                entry.save(using=self.using, force_insert=True)
        except DjangoDatabaseError as exc:
            AUDIT_APPEND_FAILURE_COUNT.labels(action=action, resource_type=resource_type).inc()
            logger.exception(
                "Audit log append failed",
                extra={
                    "error_code": AuditWriteError.code,
                    "action": action,
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "user_id": user.pk,
                },
            )
            raise AuditWriteError() from exc
        finally:
            AUDIT_APPEND_LATENCY.observe(time.perf_counter() - started)

        AUDIT_APPEND_COUNT.labels(action=action, resource_type=resource_type).inc()
        logger.debug(
            "Audit entry appended",
            extra={"audit_entry_id": entry.pk, "action": action, "resource_type": resource_type},
        )
        return entry

    def find_by_id(self, entry_id) -> Optional[AuditLogEntry]:
        try:
            entry_id = int(entry_id)
        except (TypeError, ValueError):
            return None
        return self._queryset().filter(pk=entry_id).first()

    def list(
        self,
        filters: Optional[AuditLogFilters] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> AuditLogPage:
        """Return one page of entries matching ``filters``, newest first."""

        filters = filters or AuditLogFilters()
        max_limit = settings.AUDIT_LOG_MAX_PAGE_SIZE
        limit = settings.AUDIT_LOG_PAGE_SIZE if limit is None else limit
        if limit < 1 or limit > max_limit:
            raise ValidationError(f"limit must be between 1 and {max_limit}.", fields={"limit": "out of range"})
        if page < 1:
            raise ValidationError("page must be 1 or greater.", fields={"page": "out of range"})

        queryset = self._queryset()
        if filters.user_id is not None:
            queryset = queryset.filter(user_id=filters.user_id)
        if filters.action:
            queryset = queryset.filter(action=_coerce_choice(AuditAction, filters.action, "action"))
        if filters.resource_type:
            queryset = queryset.filter(
                resource_type=_coerce_choice(ResourceType, filters.resource_type, "resource_type")
            )
        if filters.resource_id:
            queryset = queryset.filter(resource_id=str(filters.resource_id))
        if filters.date_from:
            queryset = queryset.filter(created_at__gte=filters.date_from)
        if filters.date_to:
            queryset = queryset.filter(created_at__lte=filters.date_to)

        total = queryset.count()
        offset = (page - 1) * limit
        entries = list(queryset[offset:offset + limit])
        return AuditLogPage(entries=entries, total=total, page=page, limit=limit)

    def _queryset(self):
        return AuditLogEntry.objects.using(self.using).select_related("user").order_by("-created_at", "-id")

    def _linked_asset_id(self, resource_type: str, resource_id: Optional[str]):
        if resource_type != ResourceType.ASSET or not resource_id:
            return None
        try:
            asset_id = uuid.UUID(resource_id)
        except ValueError:
            return None
        if Asset.objects.using(self.using).filter(pk=asset_id).exists():
            return asset_id
        return None


def _stored_form(metadata: Optional[Mapping[str, Any]]) -> dict:
    """Metadata exactly as the JSON column will hand it back."""
    try:
        return json.loads(json.dumps(dict(metadata or {}), cls=DjangoJSONEncoder))
    except TypeError as exc:
        raise ValidationError("Audit metadata must be JSON serialisable.", fields={"metadata": str(exc)}) from None


def _coerce_choice(choices, value, field_name: str) -> str:
    try:
        return choices(value).value
    except ValueError:
        raise ValidationError(
            f"Unknown {field_name} '{value}'.",
            fields={field_name: f"must be one of {', '.join(choices.values)}"},
        ) from None
