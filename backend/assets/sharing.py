"""ORM-backed share data for :mod:`assets.visibility`."""
from __future__ import annotations

from django.db.models import Q, QuerySet

from accounts.models import UserRole

from .models import AssetShare, AssetStatus, VisibilityLevel


class ShareLookup:
    """:class:`~assets.visibility.SharingCapability` reading ``AssetShare`` rows."""

    def __init__(self, using: str = "default"):
        self.using = using

    def is_shared_with_user(self, asset_id, user_id) -> bool:
        return AssetShare.objects.using(self.using).filter(
            asset_id=asset_id,
            target_type=AssetShare.TargetType.USER,
            shared_with_id=user_id,
        ).exists()

    def is_shared_with_team(self, asset_id, team_id) -> bool:
        return AssetShare.objects.using(self.using).filter(
            asset_id=asset_id,
            target_type=AssetShare.TargetType.TEAM,
            team_id=team_id,
        ).exists()


def visible_assets(user, queryset: QuerySet) -> QuerySet:
    """Restrict ``queryset`` to the rows ``VisibilityEvaluator.can_view`` allows."""

    if not user.is_authenticated or not user.is_active:
        return queryset.none()
    if user.role == UserRole.ADMIN:
        return queryset

    rules = (
        Q(uploader_id=user.pk)
        | Q(visibility=VisibilityLevel.PUBLIC)
        | Q(visibility=VisibilityLevel.ROLE, allowed_role=user.role)
        | Q(
            visibility=VisibilityLevel.SELECTED_USERS,
            shares__target_type=AssetShare.TargetType.USER,
            shares__shared_with_id=user.pk,
        )
        | Q(
            visibility=VisibilityLevel.TEAM,
            shares__target_type=AssetShare.TargetType.TEAM,
            shares__team__members=user,
        )
    )
    if user.company_id is not None:
        rules |= Q(visibility=VisibilityLevel.COMPANY, company_id=user.company_id)
    return queryset.filter(rules).distinct()


def listed_assets(user, queryset: QuerySet) -> QuerySet:
    """``visible_assets`` plus the role listing rule for SEO specialists."""

    queryset = visible_assets(user, queryset)
    if getattr(user, "role", None) == UserRole.SEO_SPECIALIST:
        queryset = queryset.filter(Q(uploader_id=user.pk) | Q(status=AssetStatus.APPROVED))
    return queryset
