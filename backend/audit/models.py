from __future__ import annotations

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from assethub.errors import DatabaseError


class AuditLogImmutableError(DatabaseError):
    """Raised when code tries to change or remove a stored audit entry."""

    code = "AUDIT_LOG_IMMUTABLE"
    default_message = "Audit log entries are immutable and cannot be changed or deleted."


class AuditAction(models.TextChoices):
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"
    DELETE = "DELETE", "Delete"
    APPROVE = "APPROVE", "Approve"
    REJECT = "REJECT", "Reject"
    DOWNLOAD = "DOWNLOAD", "Download"
    UPLOAD = "UPLOAD", "Upload"
    SHARE = "SHARE", "Share"
    VIEW = "VIEW", "View"


class ResourceType(models.TextChoices):
    USER = "USER", "User"
    COMPANY = "COMPANY", "Company"
    ASSET = "ASSET", "Asset"
    APPROVAL = "APPROVAL", "Approval"


# Only columns the asset delete cascade is allowed to touch.
DETACHABLE_FIELDS = frozenset({"asset", "asset_id", "resource_id"})


def SET_NULL_REFERENCE(collector, field, sub_objs, using):
    """Detach audit entries from a deleted asset.

    Nulls ``asset_id`` first and ``resource_id`` second, which is the order
    the storage trigger accepts.
    """
    entries = list(sub_objs)
    collector.add_field_update(field, None, entries)
    collector.add_field_update(field.model._meta.get_field("resource_id"), None, entries)


class AuditLogQuerySet(models.QuerySet):
    def delete(self):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")

    delete.queryset_only = True

    def update(self, **kwargs):
        if not kwargs or not set(kwargs) <= DETACHABLE_FIELDS or any(v is not None for v in kwargs.values()):
            raise AuditLogImmutableError()
        return super().update(**kwargs)


class AuditLogEntry(models.Model):
    """Append-only record of a privileged state change."""

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_log_entries",
    )
    action = models.CharField(max_length=16, choices=AuditAction.choices)
    resource_type = models.CharField(max_length=16, choices=ResourceType.choices)
    resource_id = models.CharField(max_length=64, null=True, blank=True)
    asset = models.ForeignKey(
        "assets.Asset",
        on_delete=SET_NULL_REFERENCE,
        null=True,
        blank=True,
        related_name="audit_log_entries",
    )
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        db_table = "audit_log_entry"
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=("user", "-created_at"), name="audit_user_recent_idx"),
            models.Index(fields=("action", "-created_at"), name="audit_action_recent_idx"),
            models.Index(fields=("resource_type", "resource_id"), name="audit_resource_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable only
        return f"AuditLogEntry<{self.action} {self.resource_type}:{self.resource_id}>"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLogImmutableError()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")
