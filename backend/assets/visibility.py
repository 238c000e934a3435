"""Who may see and change an asset.

Every route decision goes through :class:`VisibilityEvaluator`. The module
does no database access of its own: callers pass plain snapshots of the user
and the asset, and share lookups are delegated to an injected
:class:`SharingCapability`. A denial is always ``False``, never an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Protocol

from accounts.models import UserRole

from .models import AssetStatus, UploadType, VisibilityLevel

logger = logging.getLogger(__name__)

SHAREABLE_VISIBILITY = (VisibilityLevel.UPLOADER_ONLY, VisibilityLevel.SELECTED_USERS, VisibilityLevel.TEAM)


@dataclass(frozen=True)
class UserView:
    id: int
    role: str
    company_id: Optional[object] = None
    is_active: bool = True
    team_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_model(cls, user) -> "UserView":
        return cls(
            id=user.pk,
            role=user.role,
            company_id=user.company_id,
            is_active=user.is_active,
            team_ids=frozenset(user.teams.values_list("id", flat=True)),
        )


@dataclass(frozen=True)
class AssetView:
    id: object
    uploader_id: int
    visibility: str
    status: str = AssetStatus.DRAFT
    upload_type: str = UploadType.SEO
    company_id: Optional[object] = None
    allowed_role: Optional[str] = None

    @classmethod
    def from_model(cls, asset) -> "AssetView":
        return cls(
            id=asset.pk,
            uploader_id=asset.uploader_id,
            visibility=asset.visibility,
            status=asset.status,
            upload_type=asset.upload_type,
            company_id=asset.company_id,
            allowed_role=asset.allowed_role,
        )


class SharingCapability(Protocol):
    def is_shared_with_user(self, asset_id, user_id) -> bool: ...

    def is_shared_with_team(self, asset_id, team_id) -> bool: ...


class NoSharing:
    """Capability for callers that have no share data: nothing is shared."""

    def is_shared_with_user(self, asset_id, user_id) -> bool:
        return False

    def is_shared_with_team(self, asset_id, team_id) -> bool:
        return False


@dataclass(frozen=True)
class PermissionSummary:
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_approve: bool
    can_share: bool
    can_modify_visibility: bool
    can_download: bool
    can_log_platform_usage: bool
    reason: str


class VisibilityEvaluator:
    def __init__(self, sharing: Optional[SharingCapability] = None):
        self.sharing = sharing or NoSharing()

    def can_view(self, user: UserView, asset: AssetView, sharing: Optional[SharingCapability] = None) -> bool:
        return self._view_reason(user, asset, sharing or self.sharing)[0]

    def can_edit(self, user: UserView, asset: AssetView) -> bool:
        """Only the uploader or an admin edits; sharing never grants edit."""
        if not user.is_active:
            return False
        return self._is_uploader(user, asset) or user.is_admin

    def can_delete(self, user: UserView, asset: AssetView) -> bool:
        if not user.is_active:
            return False
        if user.is_admin:
            return True
        return self._is_uploader(user, asset) and asset.status in (AssetStatus.DRAFT, AssetStatus.REJECTED)

    def can_review(self, user: UserView) -> bool:
        return user.is_active and user.is_admin

    def can_approve(self, user: UserView, asset: AssetView) -> bool:
        return self.can_review(user) and asset.status == AssetStatus.PENDING_REVIEW

    def can_share(self, user: UserView, asset: AssetView) -> bool:
        if not user.is_active or not self._is_uploader(user, asset):
            return False
        return asset.visibility in SHAREABLE_VISIBILITY

    def can_modify_visibility(self, user: UserView, asset: AssetView) -> bool:
        return user.is_active and user.is_admin and asset.upload_type == UploadType.SEO

    def can_download(self, user: UserView, asset: AssetView, sharing: Optional[SharingCapability] = None) -> bool:
        return self.can_view(user, asset, sharing)

    def can_log_platform_usage(
        self, user: UserView, asset: AssetView, sharing: Optional[SharingCapability] = None
    ) -> bool:
        if not self.can_view(user, asset, sharing):
            return False
        return asset.upload_type != UploadType.SEO or asset.status == AssetStatus.APPROVED

    def is_listed_for(self, user: UserView, asset: AssetView, sharing: Optional[SharingCapability] = None) -> bool:
        """Listing rule on top of ``can_view``.

        SEO specialists browse approved assets only, apart from their own.
        """
        if not self.can_view(user, asset, sharing):
            return False
        if user.role == UserRole.SEO_SPECIALIST and not self._is_uploader(user, asset):
            return asset.status == AssetStatus.APPROVED
        return True

    def summarize(
        self, user: UserView, asset: AssetView, sharing: Optional[SharingCapability] = None
    ) -> PermissionSummary:
        can_view, reason = self._view_reason(user, asset, sharing or self.sharing)
        return PermissionSummary(
            can_view=can_view,
            can_edit=self.can_edit(user, asset),
            can_delete=self.can_delete(user, asset),
            can_approve=self.can_approve(user, asset),
            can_share=self.can_share(user, asset),
            can_modify_visibility=self.can_modify_visibility(user, asset),
            can_download=can_view,
            can_log_platform_usage=can_view and (
                asset.upload_type != UploadType.SEO or asset.status == AssetStatus.APPROVED
            ),
            reason=reason,
        )

    def _view_reason(self, user: UserView, asset: AssetView, sharing: SharingCapability):
        if not user.is_active:
            return False, "user is deactivated"
        if self._is_uploader(user, asset):
            return True, "uploader"
        if user.is_admin:
            return True, "admin"

        visibility = asset.visibility
        if visibility == VisibilityLevel.PUBLIC:
            return True, "public"
        if visibility == VisibilityLevel.COMPANY:
            if user.company_id is not None and asset.company_id is not None and user.company_id == asset.company_id:
                return True, "same company"
            return False, "different or missing company"
        if visibility == VisibilityLevel.ROLE:
            if asset.allowed_role is not None and user.role == asset.allowed_role:
                return True, "allowed role"
            return False, "role not allowed"
        if visibility == VisibilityLevel.TEAM:
            for team_id in user.team_ids:
                if self._lookup(sharing.is_shared_with_team, asset.id, team_id):
                    return True, "shared with team"
            return False, "not shared with any of the user's teams"
        if visibility == VisibilityLevel.SELECTED_USERS:
            if self._lookup(sharing.is_shared_with_user, asset.id, user.id):
                return True, "shared with user"
            return False, "not shared with user"
        if visibility in (VisibilityLevel.UPLOADER_ONLY, VisibilityLevel.ADMIN_ONLY):
            return False, "restricted to uploader and admins"
        return False, "unknown visibility"

    @staticmethod
    def _is_uploader(user: UserView, asset: AssetView) -> bool:
        return asset.uploader_id is not None and user.id == asset.uploader_id

    @staticmethod
    def _lookup(check, asset_id, target_id) -> bool:
        try:
            return bool(check(asset_id, target_id))
        except Exception:
            logger.exception(
                "Share lookup failed; denying access",
                extra={"asset_id": str(asset_id), "target_id": target_id},
            )
            return False
