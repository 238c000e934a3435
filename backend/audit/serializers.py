from rest_framework import serializers

from .models import AuditAction, AuditLogEntry, ResourceType


class AuditLogEntrySerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()

    class Meta:
        model = AuditLogEntry
        fields = (
            "id",
            "created_at",
            "user",
            "action",
            "resource_type",
            "resource_id",
            "asset_id",
            "metadata",
            "ip_address",
            "user_agent",
        )
        read_only_fields = fields

    def get_user(self, obj):
        user = getattr(obj, "user", None)
        if not user:
            return None
        return {
            "id": user.pk,
            "username": getattr(user, "username", None),
            "email": getattr(user, "email", None),
        }


class AuditLogQuerySerializer(serializers.Serializer):
    """Query-string parameters accepted by the audit log listing."""

    user = serializers.IntegerField(required=False, min_value=1)
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    resource_type = serializers.ChoiceField(choices=ResourceType.choices, required=False)
    resource_id = serializers.CharField(required=False, max_length=64)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        date_from, date_to = attrs.get("date_from"), attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "must not be earlier than date_from"})
        return attrs
