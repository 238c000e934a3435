"""Prometheus metrics helpers for the audit ledger."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

AUDIT_APPEND_COUNT = Counter(
    "audit_log_append_total",
    "Number of audit log entries written",
    labelnames=("action", "resource_type"),
)

AUDIT_APPEND_FAILURE_COUNT = Counter(
    "audit_log_append_failure_total",
    "Number of audit log writes that failed and rolled back their operation",
    labelnames=("action", "resource_type"),
)

AUDIT_APPEND_LATENCY = Histogram(
    "audit_log_append_duration_seconds",
    "Latency of audit log writes",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1),
)

AUDIT_GUARD_MISSING = Counter(
    "audit_log_guard_missing_total",
    "Times the daily check found an immutability trigger missing",
    labelnames=("trigger",),
)

PERMISSION_DENIED_COUNT = Counter(
    "asset_permission_denied_total",
    "Requests rejected by the asset visibility rules",
    labelnames=("action",),
)
