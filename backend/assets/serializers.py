# assets/serializers.py
from rest_framework import serializers

from accounts.models import Company, UserRole

from .models import (
    Asset,
    AssetDownload,
    AssetShare,
    AssetStatus,
    AssetType,
    AssetVersion,
    CarouselItem,
    Platform,
    PlatformUsage,
    UploadType,
    VisibilityLevel,
)
from .utils import format_file_size


class UserSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    email = serializers.EmailField()


class CarouselItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = CarouselItem
        fields = ["id", "storage_url", "item_type", "file_size", "mime_type", "order", "created_at"]
        read_only_fields = ["id", "order", "created_at"]


class AssetSerializer(serializers.ModelSerializer):
    uploader = UserSummarySerializer(read_only=True)
    company_id = serializers.UUIDField(read_only=True)
    file_size_display = serializers.SerializerMethodField()
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = Asset
        fields = [
            "id",
            "title",
            "description",
            "tags",
            "asset_type",
            "upload_type",
            "status",
            "visibility",
            "allowed_role",
            "company_id",
            "uploader",
            "storage_url",
            "file_size",
            "file_size_display",
            "mime_type",
            "target_platforms",
            "campaign_name",
            "approved_at",
            "rejected_at",
            "rejection_reason",
            "uploaded_at",
            "updated_at",
            "permissions",
        ]
        read_only_fields = fields

    def get_file_size_display(self, obj):
        return format_file_size(obj.file_size)

    def get_permissions(self, obj):
        summary_for = self.context.get("permission_summary")
        if summary_for is None:
            return None
        summary = summary_for(obj)
        return {
            "can_view": summary.can_view,
            "can_edit": summary.can_edit,
            "can_delete": summary.can_delete,
            "can_approve": summary.can_approve,
            "can_share": summary.can_share,
            "can_modify_visibility": summary.can_modify_visibility,
            "can_download": summary.can_download,
            "can_log_platform_usage": summary.can_log_platform_usage,
        }


class AssetDetailSerializer(AssetSerializer):
    carousel_items = CarouselItemSerializer(many=True, read_only=True)

    class Meta(AssetSerializer.Meta):
        fields = AssetSerializer.Meta.fields + ["carousel_items"]
        read_only_fields = fields


class CarouselItemInputSerializer(serializers.Serializer):
    storage_url = serializers.CharField(max_length=1024)
    item_type = serializers.ChoiceField(choices=CarouselItem.ItemType.choices)
    file_size = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    mime_type = serializers.CharField(required=False, allow_blank=True, max_length=100)


class AssetCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    asset_type = serializers.ChoiceField(choices=AssetType.choices)
    upload_type = serializers.ChoiceField(choices=UploadType.choices)
    storage_url = serializers.CharField(max_length=1024)
    file_size = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    mime_type = serializers.CharField(required=False, allow_blank=True, max_length=100)
    target_platforms = serializers.ListField(child=serializers.ChoiceField(choices=Platform.choices), required=False)
    campaign_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    company = serializers.PrimaryKeyRelatedField(queryset=Company.objects.all(), required=False, allow_null=True)
    visibility = serializers.ChoiceField(choices=VisibilityLevel.choices, required=False)
    allowed_role = serializers.ChoiceField(choices=UserRole.choices, required=False, allow_null=True)
    submit_for_review = serializers.BooleanField(required=False, default=False)
    carousel_items = CarouselItemInputSerializer(many=True, required=False)


class AssetUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    target_platforms = serializers.ListField(child=serializers.ChoiceField(choices=Platform.choices), required=False)
    campaign_name = serializers.CharField(required=False, allow_blank=True, max_length=255)


class ApproveSerializer(serializers.Serializer):
    visibility = serializers.ChoiceField(choices=VisibilityLevel.choices, required=False)
    allowed_role = serializers.ChoiceField(choices=UserRole.choices, required=False, allow_null=True)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=False, trim_whitespace=True)


class VisibilitySerializer(serializers.Serializer):
    visibility = serializers.ChoiceField(choices=VisibilityLevel.choices)
    allowed_role = serializers.ChoiceField(choices=UserRole.choices, required=False, allow_null=True)


class DownloadRequestSerializer(serializers.Serializer):
    platforms = serializers.ListField(child=serializers.ChoiceField(choices=Platform.choices), required=False)
    expires_in = serializers.IntegerField(required=False, min_value=60, max_value=86400)


class AssetVersionSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = AssetVersion
        fields = ["id", "version_number", "storage_url", "file_size", "created_by", "created_at"]
        read_only_fields = fields


class AssetVersionCreateSerializer(serializers.Serializer):
    storage_url = serializers.CharField(max_length=1024)
    file_size = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class CarouselItemsCreateSerializer(serializers.Serializer):
    items = CarouselItemInputSerializer(many=True, allow_empty=False)


class AssetShareSerializer(serializers.ModelSerializer):
    shared_with = UserSummarySerializer(read_only=True)
    shared_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = AssetShare
        fields = ["id", "target_type", "shared_with", "team", "shared_by", "created_at"]
        read_only_fields = fields


class ShareRequestSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    team_id = serializers.IntegerField(required=False, allow_null=True)


class PlatformUsageSerializer(serializers.ModelSerializer):
    logged_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = PlatformUsage
        fields = ["id", "platform", "campaign_name", "post_url", "logged_by", "used_at"]
        read_only_fields = ["id", "logged_by", "used_at"]


class AssetDownloadSerializer(serializers.ModelSerializer):
    asset_id = serializers.UUIDField(read_only=True)
    asset_title = serializers.CharField(source="asset.title", read_only=True)
    asset_status = serializers.ChoiceField(source="asset.status", choices=AssetStatus.choices, read_only=True)

    class Meta:
        model = AssetDownload
        fields = ["id", "asset_id", "asset_title", "asset_status", "platforms", "downloaded_at"]
        read_only_fields = fields
