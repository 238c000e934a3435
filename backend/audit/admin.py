from django.contrib import admin

from .models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "user",
        "action",
        "resource_type",
        "resource_id",
        "ip_address",
    )
    list_filter = ("action", "resource_type")
    search_fields = ("resource_id", "ip_address", "user__username", "user__email")
    ordering = ("-created_at", "-id")
    readonly_fields = (
        "created_at",
        "user",
        "action",
        "resource_type",
        "resource_id",
        "asset",
        "metadata",
        "ip_address",
        "user_agent",
    )

    fieldsets = (
        (None, {"fields": ("created_at", "user", "action")}),
        ("Resource", {"fields": ("resource_type", "resource_id", "asset", "metadata")}),
        ("Meta", {"fields": ("ip_address", "user_agent")}),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
