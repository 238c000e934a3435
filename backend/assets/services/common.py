"""Helpers shared by the asset services."""
from __future__ import annotations

import logging
from typing import Optional

from assethub.errors import AuthorizationError, NotFoundError
from audit.ledger import AuditLedger
from audit.metrics import PERMISSION_DENIED_COUNT

from ..models import Asset
from ..sharing import ShareLookup
from ..visibility import AssetView, UserView, VisibilityEvaluator

logger = logging.getLogger(__name__)


def default_evaluator() -> VisibilityEvaluator:
    return VisibilityEvaluator(ShareLookup())


def resolve(ledger: Optional[AuditLedger], evaluator: Optional[VisibilityEvaluator]):
    return ledger or AuditLedger(), evaluator or default_evaluator()


def require(allowed: bool, *, action: str, actor, asset=None, message: Optional[str] = None) -> None:
    """Turn an evaluator denial into :class:`AuthorizationError`."""

    if allowed:
        return
    PERMISSION_DENIED_COUNT.labels(action=action).inc()
    logger.info(
        "Permission denied",
        extra={
            "error_code": AuthorizationError.code,
            "action": action,
            "user_id": getattr(actor, "pk", None),
            "asset_id": str(asset.pk) if asset is not None else None,
        },
    )
    raise AuthorizationError(message)


def lock_asset(asset_id) -> Asset:
    """Re-read an asset under a row lock inside the caller's transaction."""

    asset = Asset.objects.select_for_update().filter(pk=asset_id).first()
    if asset is None:
        raise NotFoundError("Asset not found.")
    return asset


def views(actor, asset):
    return UserView.from_model(actor), AssetView.from_model(asset)
