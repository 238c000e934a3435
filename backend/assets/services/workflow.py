"""Review workflow for assets.

DRAFT -> PENDING_REVIEW -> APPROVED | REJECTED, and a rejected asset goes
back to PENDING_REVIEW (resubmit) or DRAFT (revert). Each transition runs in
one transaction with exactly one audit entry.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from accounts.models import UserRole
from assethub.errors import ConflictError, ValidationError
from audit.context import EMPTY_CONTEXT, AuditContext
from audit.ledger import AuditLedger
from audit.models import AuditAction, ResourceType

from ..models import Approval, Asset, AssetStatus, UploadType, VisibilityLevel
from ..visibility import UserView, VisibilityEvaluator
from .common import lock_asset, require, resolve, views

logger = logging.getLogger(__name__)


def submit_for_review(
    *,
    asset: Asset,
    actor,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    ledger, evaluator = resolve(ledger, evaluator)
    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="submit", actor=actor, asset=asset)
        if asset.upload_type != UploadType.SEO:
            raise ConflictError("Only SEO assets go through review.")
        if asset.status != AssetStatus.DRAFT:
            raise ConflictError(f"Cannot submit an asset in status {asset.status}.")
        return _transition(
            asset, actor, AssetStatus.PENDING_REVIEW, "submit_for_review", context, ledger,
        )


def resubmit_asset(
    *,
    asset: Asset,
    actor,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    """Send a rejected asset back to the review queue."""

    ledger, evaluator = resolve(ledger, evaluator)
    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="resubmit", actor=actor, asset=asset)
        if asset.status != AssetStatus.REJECTED:
            raise ConflictError("Only rejected assets can be resubmitted.")
        return _transition(asset, actor, AssetStatus.PENDING_REVIEW, "resubmit", context, ledger)


def revert_to_draft(
    *,
    asset: Asset,
    actor,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    ledger, evaluator = resolve(ledger, evaluator)
    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="revert_to_draft", actor=actor, asset=asset)
        if asset.status != AssetStatus.REJECTED:
            raise ConflictError("Only rejected assets can be moved back to draft.")
        return _transition(asset, actor, AssetStatus.DRAFT, "revert_to_draft", context, ledger)


def approve_asset(
    *,
    asset_id,
    reviewer,
    new_visibility: Optional[str] = None,
    allowed_role: Optional[str] = None,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    """Approve a pending asset, optionally changing its visibility in the same step."""

    ledger, evaluator = resolve(ledger, evaluator)
    require(
        evaluator.can_review(UserView.from_model(reviewer)),
        action="approve",
        actor=reviewer,
        message="Only admins can approve assets.",
    )
    if new_visibility is None and allowed_role is not None:
        raise ValidationError(
            "allowed_role requires visibility ROLE.", fields={"allowed_role": "only allowed with visibility ROLE"}
        )

    with transaction.atomic():
        asset = lock_asset(asset_id)
        if asset.status != AssetStatus.PENDING_REVIEW:
            raise ConflictError(f"Cannot approve an asset in status {asset.status}.")

        previous = {
            "status": asset.status,
            "visibility": asset.visibility,
            "allowed_role": asset.allowed_role,
        }
        if new_visibility is not None:
            if asset.upload_type != UploadType.SEO:
                raise ValidationError(
                    "Visibility can only be set on SEO assets.", fields={"visibility": "not allowed"}
                )
            asset.visibility, asset.allowed_role = validate_visibility(new_visibility, allowed_role)

        now = timezone.now()
        asset.status = AssetStatus.APPROVED
        asset.approved_at = now
        asset.approved_by = reviewer
        asset.rejected_at = None
        asset.rejected_by = None
        asset.rejection_reason = ""
        asset.save()

        approval = Approval.objects.create(asset=asset, reviewer=reviewer, action=Approval.Action.APPROVE)
        ledger.append(
            user=reviewer,
            action=AuditAction.APPROVE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "title": asset.title,
                "approval_id": approval.pk,
                "previous_status": previous["status"],
                "new_status": asset.status,
                "previous_visibility": previous["visibility"],
                "new_visibility": asset.visibility,
                "previous_allowed_role": previous["allowed_role"],
                "new_allowed_role": asset.allowed_role,
            },
            **context.as_kwargs(),
        )

    logger.info("Asset approved", extra={"asset_id": str(asset.pk), "user_id": reviewer.pk})
    return asset


def reject_asset(
    *,
    asset_id,
    reviewer,
    reason: str,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    ledger, evaluator = resolve(ledger, evaluator)
    require(
        evaluator.can_review(UserView.from_model(reviewer)),
        action="reject",
        actor=reviewer,
        message="Only admins can reject assets.",
    )
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required.", fields={"reason": "required"})

    with transaction.atomic():
        asset = lock_asset(asset_id)
        if asset.status != AssetStatus.PENDING_REVIEW:
            raise ConflictError(f"Cannot reject an asset in status {asset.status}.")

        previous_status = asset.status
        asset.status = AssetStatus.REJECTED
        asset.rejected_at = timezone.now()
        asset.rejected_by = reviewer
        asset.rejection_reason = reason
        asset.save()

        approval = Approval.objects.create(
            asset=asset, reviewer=reviewer, action=Approval.Action.REJECT, reason=reason,
        )
        ledger.append(
            user=reviewer,
            action=AuditAction.REJECT,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "title": asset.title,
                "approval_id": approval.pk,
                "previous_status": previous_status,
                "new_status": asset.status,
                "reason": reason,
            },
            **context.as_kwargs(),
        )

    logger.info("Asset rejected", extra={"asset_id": str(asset.pk), "user_id": reviewer.pk})
    return asset


def pending_assets():
    """Review queue, oldest first."""
    return (
        Asset.objects.filter(status=AssetStatus.PENDING_REVIEW)
        .select_related("uploader", "company")
        .order_by("uploaded_at")
    )


def validate_visibility(visibility: str, allowed_role: Optional[str]):
    """Return a ``(visibility, allowed_role)`` pair that satisfies the model constraint."""

    if visibility not in VisibilityLevel.values:
        raise ValidationError(
            "Unknown visibility.",
            fields={"visibility": f"must be one of {', '.join(VisibilityLevel.values)}"},
        )
    if visibility == VisibilityLevel.ROLE:
        if allowed_role not in UserRole.values:
            raise ValidationError(
                "allowed_role is required when visibility is ROLE.",
                fields={"allowed_role": f"must be one of {', '.join(UserRole.values)}"},
            )
        return visibility, allowed_role
    if allowed_role is not None:
        raise ValidationError(
            "allowed_role is only allowed when visibility is ROLE.",
            fields={"allowed_role": "only allowed with visibility ROLE"},
        )
    return visibility, None


def _transition(asset, actor, new_status, operation, context, ledger):
    previous_status = asset.status
    asset.status = new_status
    if new_status == AssetStatus.PENDING_REVIEW:
        asset.rejected_at = None
        asset.rejected_by = None
        asset.rejection_reason = ""
    asset.save()
    ledger.append(
        user=actor,
        action=AuditAction.UPDATE,
        resource_type=ResourceType.ASSET,
        resource_id=asset.pk,
        metadata={
            "operation": operation,
            "previous_status": previous_status,
            "new_status": new_status,
        },
        **context.as_kwargs(),
    )
    logger.info(
        "Asset status changed",
        extra={"asset_id": str(asset.pk), "user_id": actor.pk, "status": new_status},
    )
    return asset
