"""Granting and revoking access to individual assets."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from django.db import transaction

from accounts.models import Team, User
from assethub.errors import ConflictError, NotFoundError, ValidationError
from audit.context import EMPTY_CONTEXT, AuditContext
from audit.ledger import AuditLedger
from audit.models import AuditAction, ResourceType

from ..models import Asset, AssetShare, VisibilityLevel
from ..visibility import VisibilityEvaluator
from .common import lock_asset, require, resolve, views

logger = logging.getLogger(__name__)


def share_asset(
    *,
    asset: Asset,
    actor,
    user_ids: Iterable[int] = (),
    team_id: Optional[int] = None,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> List[AssetShare]:
    """Share an asset with users or a team.

    Sharing an UPLOADER_ONLY asset with users switches it to SELECTED_USERS;
    sharing it with a team switches it to TEAM. User and team shares do not
    mix on one asset. Existing shares are kept.
    """

    ledger, evaluator = resolve(ledger, evaluator)
    user_ids = sorted(set(user_ids))
    if not user_ids and team_id is None:
        raise ValidationError("Provide user_ids or team_id.", fields={"user_ids": "required"})
    if user_ids and team_id is not None:
        raise ValidationError("Share with users or with a team, not both.", fields={"team_id": "not allowed with user_ids"})
    if actor.pk in user_ids:
        raise ValidationError("You cannot share an asset with yourself.", fields={"user_ids": "contains yourself"})

    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(
            evaluator.can_share(user_view, asset_view),
            action="share",
            actor=actor,
            asset=asset,
            message="Only the uploader can share assets that are private or already shared.",
        )

        # Recipients are resolved only once the actor may share.
        recipients = []
        team = None
        if user_ids:
            recipients = list(User.objects.filter(pk__in=user_ids, is_active=True))
            if len(recipients) != len(user_ids):
                found = {user.pk for user in recipients}
                missing = [pk for pk in user_ids if pk not in found]
                raise NotFoundError(f"Users not found or inactive: {', '.join(str(pk) for pk in missing)}.")
        else:
            team = Team.objects.filter(pk=team_id).first()
            if team is None:
                raise NotFoundError("Team not found.")

        if team is not None and asset.visibility == VisibilityLevel.SELECTED_USERS:
            raise ConflictError("Asset is shared with selected users; it cannot also be shared with a team.")
        if team is None and asset.visibility == VisibilityLevel.TEAM:
            raise ConflictError("Asset is shared with teams; it cannot also be shared with individual users.")

        previous_visibility = asset.visibility
        created = []
        if team is not None:
            share, was_created = AssetShare.objects.get_or_create(
                asset=asset,
                team=team,
                defaults={"shared_by": actor, "target_type": AssetShare.TargetType.TEAM},
            )
            if was_created:
                created.append(share)
            new_visibility = VisibilityLevel.TEAM
        else:
            existing = set(
                AssetShare.objects.filter(asset=asset, shared_with__in=recipients)
                .values_list("shared_with_id", flat=True)
            )
            for recipient in recipients:
                if recipient.pk in existing:
                    continue
                created.append(AssetShare.objects.create(
                    asset=asset,
                    shared_by=actor,
                    target_type=AssetShare.TargetType.USER,
                    shared_with=recipient,
                ))
            new_visibility = VisibilityLevel.SELECTED_USERS

        if asset.visibility != new_visibility:
            asset.visibility = new_visibility
            asset.allowed_role = None
            asset.save(update_fields=["visibility", "allowed_role", "updated_at"])

        ledger.append(
            user=actor,
            action=AuditAction.SHARE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "operation": "share",
                "user_ids": [recipient.pk for recipient in recipients],
                "team_id": team.pk if team is not None else None,
                "new_share_count": len(created),
                "previous_visibility": previous_visibility,
                "new_visibility": asset.visibility,
            },
            **context.as_kwargs(),
        )

    logger.info("Asset shared", extra={"asset_id": str(asset.pk), "user_id": actor.pk})
    return created


def revoke_share(
    *,
    asset: Asset,
    actor,
    user_id: Optional[int] = None,
    team_id: Optional[int] = None,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> None:
    ledger, evaluator = resolve(ledger, evaluator)
    if (user_id is None) == (team_id is None):
        raise ValidationError("Provide exactly one of user_id or team_id.", fields={"user_id": "required"})
    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_share(user_view, asset_view), action="revoke_share", actor=actor, asset=asset)

        shares = AssetShare.objects.filter(asset=asset)
        if user_id is not None:
            shares = shares.filter(shared_with_id=user_id)
        else:
            shares = shares.filter(team_id=team_id)
        deleted, _ = shares.delete()
        if not deleted:
            raise NotFoundError("Share not found.")
        ledger.append(
            user=actor,
            action=AuditAction.SHARE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={"operation": "revoke", "user_id": user_id, "team_id": team_id},
            **context.as_kwargs(),
        )
