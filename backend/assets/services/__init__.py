"""Expose commonly used asset services."""

from .catalog import (
    add_carousel_items,
    add_version,
    change_visibility,
    create_asset,
    delete_asset,
    log_platform_usage,
    record_download,
    update_asset,
)
from .sharing import revoke_share, share_asset
from .workflow import (
    approve_asset,
    pending_assets,
    reject_asset,
    resubmit_asset,
    revert_to_draft,
    submit_for_review,
)
