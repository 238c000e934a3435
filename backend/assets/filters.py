"""FilterSet definitions for asset endpoints."""
from __future__ import annotations

import django_filters
from django.db.models import Q

from assets.models import Asset, AssetDownload, AssetStatus, AssetType, UploadType, VisibilityLevel


class AssetFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=AssetStatus.choices)
    visibility = django_filters.ChoiceFilter(choices=VisibilityLevel.choices)
    asset_type = django_filters.ChoiceFilter(choices=AssetType.choices)
    upload_type = django_filters.ChoiceFilter(choices=UploadType.choices)
    company = django_filters.UUIDFilter(field_name="company_id")
    uploader = django_filters.NumberFilter(field_name="uploader_id")
    uploaded_after = django_filters.DateTimeFilter(field_name="uploaded_at", lookup_expr="gte")
    uploaded_before = django_filters.DateTimeFilter(field_name="uploaded_at", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Asset
        fields = ["status", "visibility", "asset_type", "upload_type", "company", "uploader"]

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value)
            | Q(description__icontains=value)
            | Q(campaign_name__icontains=value)
        )


class DownloadFilter(django_filters.FilterSet):
    downloaded_after = django_filters.DateTimeFilter(field_name="downloaded_at", lookup_expr="gte")
    downloaded_before = django_filters.DateTimeFilter(field_name="downloaded_at", lookup_expr="lte")
    asset = django_filters.UUIDFilter(field_name="asset_id")

    class Meta:
        model = AssetDownload
        fields = ["asset"]
