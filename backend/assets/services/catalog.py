"""Asset creation, editing and removal."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator
from django.db import transaction
from django.db.models import Max

from assethub.errors import AuthorizationError, ConflictError, ValidationError
from audit.context import EMPTY_CONTEXT, AuditContext
from audit.ledger import AuditLedger
from audit.models import AuditAction, ResourceType

from ..models import (
    Asset,
    AssetDownload,
    AssetStatus,
    AssetType,
    AssetVersion,
    CarouselItem,
    Platform,
    PlatformUsage,
    UploadType,
    VisibilityLevel,
)
from ..visibility import UserView, VisibilityEvaluator
from .common import default_evaluator, lock_asset, require, resolve, views
from .workflow import validate_visibility

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "tags", "target_platforms", "campaign_name")
_url_validator = URLValidator(schemes=("http", "https"))


def create_asset(
    *,
    uploader,
    data: Mapping[str, Any],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> Asset:
    """Create an asset and record the upload.

    SEO uploads belong to a company and enter the review workflow; DOC uploads
    are private working documents of their uploader.
    """

    ledger = ledger or AuditLedger()
    user_view = UserView.from_model(uploader)
    require(user_view.is_active, action="upload", actor=uploader)

    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required.", fields={"title": "required"})
    asset_type = data.get("asset_type")
    if asset_type not in AssetType.values:
        raise ValidationError("Unknown asset type.", fields={"asset_type": f"must be one of {', '.join(AssetType.values)}"})
    upload_type = data.get("upload_type")
    if upload_type not in UploadType.values:
        raise ValidationError("Unknown upload type.", fields={"upload_type": f"must be one of {', '.join(UploadType.values)}"})

    storage_url = (data.get("storage_url") or "").strip()
    if not storage_url:
        raise ValidationError("A storage URL is required.", fields={"storage_url": "required"})
    if asset_type == AssetType.LINK:
        _validate_url(storage_url, "storage_url")

    company = data.get("company")
    if upload_type == UploadType.SEO and company is None:
        raise ValidationError("SEO assets must belong to a company.", fields={"company": "required"})
    if upload_type == UploadType.DOC and company is not None:
        raise ValidationError("DOC assets cannot belong to a company.", fields={"company": "not allowed"})

    visibility, allowed_role = _initial_visibility(user_view, upload_type, data)
    status = AssetStatus.DRAFT
    if upload_type == UploadType.SEO and data.get("submit_for_review"):
        status = AssetStatus.PENDING_REVIEW

    carousel_items = list(data.get("carousel_items") or [])
    if carousel_items and asset_type != AssetType.CAROUSEL:
        raise ValidationError("Only carousel assets have items.", fields={"carousel_items": "not allowed"})

    with transaction.atomic():
        asset = Asset.objects.create(
            title=title,
            description=data.get("description") or "",
            tags=normalize_tags(data.get("tags")),
            asset_type=asset_type,
            upload_type=upload_type,
            status=status,
            visibility=visibility,
            allowed_role=allowed_role,
            company=company,
            uploader=uploader,
            storage_url=storage_url,
            file_size=data.get("file_size"),
            mime_type=data.get("mime_type") or "",
            target_platforms=normalize_platforms(data.get("target_platforms")),
            campaign_name=data.get("campaign_name") or "",
        )
        if carousel_items:
            _append_carousel_items(asset, carousel_items)
        ledger.append(
            user=uploader,
            action=AuditAction.UPLOAD,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "title": asset.title,
                "asset_type": asset.asset_type,
                "upload_type": asset.upload_type,
                "status": asset.status,
                "visibility": asset.visibility,
                "company_id": asset.company_id,
                "carousel_item_count": len(carousel_items),
            },
            **context.as_kwargs(),
        )

    logger.info("Asset uploaded", extra={"asset_id": str(asset.pk), "user_id": uploader.pk})
    return asset


def update_asset(
    *,
    asset: Asset,
    actor,
    changes: Mapping[str, Any],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    ledger, evaluator = resolve(ledger, evaluator)
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError("Unsupported fields.", fields={name: "not editable" for name in sorted(unknown)})
    changes = dict(changes)
    if "title" in changes:
        changes["title"] = (changes["title"] or "").strip()
        if not changes["title"]:
            raise ValidationError("Title is required.", fields={"title": "required"})
    if "tags" in changes:
        changes["tags"] = normalize_tags(changes["tags"])
    if "target_platforms" in changes:
        changes["target_platforms"] = normalize_platforms(changes["target_platforms"])

    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="update", actor=actor, asset=asset)

        previous, new = {}, {}
        for name, value in changes.items():
            if getattr(asset, name) != value:
                previous[name] = getattr(asset, name)
                new[name] = value
                setattr(asset, name, value)
        if not new:
            return asset

        asset.save()
        ledger.append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={"operation": "update", "previous": previous, "new": new},
            **context.as_kwargs(),
        )
    return asset


def change_visibility(
    *,
    asset: Asset,
    actor,
    visibility: str,
    allowed_role: Optional[str] = None,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> Asset:
    ledger, evaluator = resolve(ledger, evaluator)
    visibility, allowed_role = validate_visibility(visibility, allowed_role)

    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(
            evaluator.can_modify_visibility(user_view, asset_view),
            action="visibility",
            actor=actor,
            asset=asset,
            message="Only admins can change the visibility of SEO assets.",
        )
        if asset.visibility == visibility and asset.allowed_role == allowed_role:
            return asset

        previous_visibility, previous_role = asset.visibility, asset.allowed_role
        asset.visibility = visibility
        asset.allowed_role = allowed_role
        asset.save(update_fields=["visibility", "allowed_role", "updated_at"])
        ledger.append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "operation": "visibility_change",
                "previous_visibility": previous_visibility,
                "new_visibility": visibility,
                "previous_allowed_role": previous_role,
                "new_allowed_role": allowed_role,
            },
            **context.as_kwargs(),
        )
    logger.info("Asset visibility changed", extra={"asset_id": str(asset.pk), "visibility": visibility})
    return asset


def delete_asset(
    *,
    asset: Asset,
    actor,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> None:
    """Delete an asset with its versions, carousel items and shares.

    Audit entries about the asset survive with their references cleared.
    """

    ledger, evaluator = resolve(ledger, evaluator)
    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_delete(user_view, asset_view), action="destroy", actor=actor, asset=asset)

        ledger.append(
            user=actor,
            action=AuditAction.DELETE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "asset_id": str(asset.pk),
                "title": asset.title,
                "status": asset.status,
                "upload_type": asset.upload_type,
                "uploader_id": asset.uploader_id,
            },
            **context.as_kwargs(),
        )
        asset_id = asset.pk
        asset.delete()
    logger.info("Asset deleted", extra={"asset_id": str(asset_id), "user_id": actor.pk})


def add_version(
    *,
    asset: Asset,
    actor,
    storage_url: str,
    file_size: Optional[int] = None,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> AssetVersion:
    """Keep the current file as the next version and point the asset at the new one."""

    ledger, evaluator = resolve(ledger, evaluator)
    storage_url = (storage_url or "").strip()
    if not storage_url:
        raise ValidationError("A storage URL is required.", fields={"storage_url": "required"})

    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="add_version", actor=actor, asset=asset)
        if asset.asset_type == AssetType.LINK:
            _validate_url(storage_url, "storage_url")

        latest = asset.versions.aggregate(latest=Max("version_number"))["latest"] or 0
        version = AssetVersion.objects.create(
            asset=asset,
            version_number=latest + 1,
            storage_url=asset.storage_url,
            file_size=asset.file_size,
            created_by=actor,
        )
        asset.storage_url = storage_url
        asset.file_size = file_size
        asset.save(update_fields=["storage_url", "file_size", "updated_at"])
        ledger.append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "operation": "new_version",
                "version_number": version.version_number,
                "previous_storage_url": version.storage_url,
                "new_storage_url": storage_url,
            },
            **context.as_kwargs(),
        )
    return version


def add_carousel_items(
    *,
    asset: Asset,
    actor,
    items: Sequence[Mapping[str, Any]],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> List[CarouselItem]:
    ledger, evaluator = resolve(ledger, evaluator)
    if not items:
        raise ValidationError("At least one item is required.", fields={"items": "required"})

    with transaction.atomic():
        asset = lock_asset(asset.pk)
        user_view, asset_view = views(actor, asset)
        require(evaluator.can_edit(user_view, asset_view), action="add_carousel_items", actor=actor, asset=asset)
        if asset.asset_type != AssetType.CAROUSEL:
            raise ConflictError("Items can only be added to carousel assets.")
        created = _append_carousel_items(asset, items)
        ledger.append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={
                "operation": "add_carousel_items",
                "item_ids": [str(item.pk) for item in created],
                "item_count": len(created),
            },
            **context.as_kwargs(),
        )
    return created


def record_download(
    *,
    asset: Asset,
    actor,
    platforms: Iterable[str] = (),
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
    evaluator: Optional[VisibilityEvaluator] = None,
) -> AssetDownload:
    ledger, evaluator = resolve(ledger, evaluator)
    platforms = normalize_platforms(platforms)
    user_view, asset_view = views(actor, asset)
    require(evaluator.can_download(user_view, asset_view), action="download", actor=actor, asset=asset)

    with transaction.atomic():
        download = AssetDownload.objects.create(asset=asset, downloaded_by=actor, platforms=platforms)
        ledger.append(
            user=actor,
            action=AuditAction.DOWNLOAD,
            resource_type=ResourceType.ASSET,
            resource_id=asset.pk,
            metadata={"title": asset.title, "platforms": platforms, "download_id": download.pk},
            **context.as_kwargs(),
        )
    return download


def log_platform_usage(
    *,
    asset: Asset,
    actor,
    platform: str,
    campaign_name: str,
    post_url: str = "",
    evaluator: Optional[VisibilityEvaluator] = None,
) -> PlatformUsage:
    """Record where an asset was published; not a privileged change, so not audited."""

    evaluator = evaluator or default_evaluator()
    user_view, asset_view = views(actor, asset)
    require(
        evaluator.can_log_platform_usage(user_view, asset_view),
        action="log_platform_usage",
        actor=actor,
        asset=asset,
        message="Usage can only be logged for assets you can view; SEO assets must be approved.",
    )
    if platform not in Platform.values:
        raise ValidationError("Unknown platform.", fields={"platform": f"must be one of {', '.join(Platform.values)}"})
    campaign_name = (campaign_name or "").strip()
    if not campaign_name:
        raise ValidationError("Campaign name is required.", fields={"campaign_name": "required"})
    if post_url:
        _validate_url(post_url, "post_url")
    return PlatformUsage.objects.create(
        asset=asset,
        platform=platform,
        campaign_name=campaign_name,
        post_url=post_url or "",
        logged_by=actor,
    )


def normalize_tags(tags) -> List[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    cleaned: List[str] = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    if len(cleaned) > settings.ASSET_MAX_TAGS:
        raise ValidationError(
            f"At most {settings.ASSET_MAX_TAGS} tags are allowed.", fields={"tags": "too many"}
        )
    return cleaned


def normalize_platforms(platforms) -> List[str]:
    result: List[str] = []
    for platform in platforms or ():
        if platform not in Platform.values:
            raise ValidationError(
                f"Unknown platform '{platform}'.",
                fields={"platforms": f"must be one of {', '.join(Platform.values)}"},
            )
        if platform not in result:
            result.append(platform)
    return result


def _initial_visibility(user_view: UserView, upload_type: str, data: Mapping[str, Any]):
    if upload_type == UploadType.DOC:
        return VisibilityLevel.UPLOADER_ONLY, None
    requested = data.get("visibility")
    if not user_view.is_admin:
        if requested not in (None, VisibilityLevel.ADMIN_ONLY):
            raise AuthorizationError("Only admins can choose the visibility of SEO assets.")
        return VisibilityLevel.ADMIN_ONLY, None
    if requested is None:
        return VisibilityLevel.ADMIN_ONLY, None
    return validate_visibility(requested, data.get("allowed_role"))


def _append_carousel_items(asset: Asset, items: Sequence[Mapping[str, Any]]) -> List[CarouselItem]:
    latest = asset.carousel_items.aggregate(latest=Max("order"))["latest"]
    next_order = 0 if latest is None else latest + 1
    created = []
    for offset, item in enumerate(items):
        storage_url = (item.get("storage_url") or "").strip()
        if not storage_url:
            raise ValidationError("Each item needs a storage URL.", fields={f"items[{offset}]": "storage_url required"})
        item_type = item.get("item_type")
        if item_type not in CarouselItem.ItemType.values:
            raise ValidationError("Items must be images or videos.", fields={f"items[{offset}]": "invalid item_type"})
        created.append(CarouselItem.objects.create(
            asset=asset,
            storage_url=storage_url,
            item_type=item_type,
            file_size=item.get("file_size"),
            mime_type=item.get("mime_type") or "",
            order=next_order + offset,
        ))
    return created


def _validate_url(value: str, field_name: str) -> None:
    try:
        _url_validator(value)
    except DjangoValidationError:
        raise ValidationError("Enter a valid http(s) URL.", fields={field_name: "invalid url"}) from None
