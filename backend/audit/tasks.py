"""Celery tasks for the audit ledger."""
from __future__ import annotations

import logging
from typing import Dict, List

from celery import shared_task
from django.db import connections

from audit.guards import missing_triggers
from audit.metrics import AUDIT_GUARD_MISSING

logger = logging.getLogger(__name__)


@shared_task
def verify_audit_log_guards(using: str = "default") -> Dict[str, List[str]]:
    """Confirm the immutability triggers are still installed on the audit table."""

    missing = sorted(missing_triggers(connections[using]))
    for trigger in missing:
        AUDIT_GUARD_MISSING.labels(trigger=trigger).inc()
    if missing:
        logger.error(
            "Audit log immutability trigger missing",
            extra={"error_code": "AUDIT_GUARD_MISSING", "triggers": missing, "database": using},
        )
    return {"missing": missing}
