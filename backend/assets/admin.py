"""Admin registrations that help staff monitor assets and their review history."""

from django.contrib import admin

from .models import Approval, Asset, AssetDownload, AssetShare, AssetVersion, CarouselItem, PlatformUsage


class AssetVersionInline(admin.TabularInline):
    model = AssetVersion
    extra = 0
    can_delete = False
    readonly_fields = ("version_number", "storage_url", "file_size", "created_by", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


class CarouselItemInline(admin.TabularInline):
    model = CarouselItem
    extra = 0
    readonly_fields = ("created_at",)


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    """Expose assets to staff; status and visibility changes go through the API."""

    list_display = ("title", "asset_type", "upload_type", "status", "visibility", "company", "uploader", "uploaded_at")
    list_select_related = ("company", "uploader")
    search_fields = ("id", "title", "campaign_name", "uploader__email", "company__name")
    list_filter = ("status", "visibility", "upload_type", "asset_type")
    date_hierarchy = "uploaded_at"
    ordering = ("-uploaded_at",)
    readonly_fields = (
        "status", "visibility", "allowed_role", "approved_at", "approved_by",
        "rejected_at", "rejected_by", "rejection_reason", "uploaded_at", "updated_at",
    )
    inlines = (AssetVersionInline, CarouselItemInline)


@admin.register(AssetShare)
class AssetShareAdmin(admin.ModelAdmin):
    list_display = ("asset", "target_type", "shared_with", "team", "shared_by", "created_at")
    list_filter = ("target_type",)
    list_select_related = ("asset", "shared_with", "team", "shared_by")


@admin.register(Approval)
class ApprovalAdmin(admin.ModelAdmin):
    list_display = ("asset", "action", "reviewer", "created_at")
    list_filter = ("action",)
    readonly_fields = ("asset", "reviewer", "action", "reason", "created_at")


@admin.register(AssetDownload)
class AssetDownloadAdmin(admin.ModelAdmin):
    list_display = ("asset", "downloaded_by", "downloaded_at")
    date_hierarchy = "downloaded_at"


@admin.register(PlatformUsage)
class PlatformUsageAdmin(admin.ModelAdmin):
    list_display = ("asset", "platform", "campaign_name", "logged_by", "used_at")
    list_filter = ("platform",)
