"""Celery tasks for account maintenance."""
from __future__ import annotations

import logging
from typing import Dict

from celery import shared_task

from accounts.services import expire_stale_activation_codes

logger = logging.getLogger(__name__)


@shared_task
def expire_activation_codes() -> Dict[str, int]:
    """Clear activation codes that passed their expiry without being used."""

    cleared = expire_stale_activation_codes()
    if cleared:
        logger.info("Expired activation codes cleared", extra={"cleared": cleared})
    return {"cleared": cleared}
