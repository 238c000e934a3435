"""Database triggers that make ``audit_log_entry`` append-only.

Installed by migration ``0002_immutability_triggers`` and checked by the
``verify_audit_log_guards`` task. An UPDATE is let through only when it
detaches an entry from a deleted asset: the reference columns go to NULL
and nothing else changes. DELETE always fails.
"""
from __future__ import annotations

from typing import List

from django.core.exceptions import ImproperlyConfigured

TABLE = "audit_log_entry"
UPDATE_TRIGGER = "audit_log_entry_no_update"
DELETE_TRIGGER = "audit_log_entry_no_delete"
TRUNCATE_TRIGGER = "audit_log_entry_no_truncate"
FUNCTION = "audit_log_entry_guard"

POSTGRES_INSTALL = [
    f"""
    CREATE OR REPLACE FUNCTION {FUNCTION}() RETURNS trigger
    LANGUAGE plpgsql AS $$
    BEGIN
        IF TG_OP IN ('DELETE', 'TRUNCATE') THEN
            RAISE EXCEPTION 'AUDIT_LOG_IMMUTABLE: audit log entries cannot be deleted'
                USING ERRCODE = 'restrict_violation';
        END IF;
        IF (NEW.id, NEW.user_id, NEW.action, NEW.resource_type, NEW.metadata,
            NEW.ip_address, NEW.user_agent, NEW.created_at)
           IS DISTINCT FROM
           (OLD.id, OLD.user_id, OLD.action, OLD.resource_type, OLD.metadata,
            OLD.ip_address, OLD.user_agent, OLD.created_at)
           OR (NEW.asset_id IS NOT NULL AND NEW.asset_id IS DISTINCT FROM OLD.asset_id)
           OR (NEW.resource_id IS DISTINCT FROM OLD.resource_id
               AND NOT (NEW.resource_id IS NULL AND NEW.asset_id IS NULL AND OLD.resource_type = 'ASSET'))
           OR (NEW.asset_id IS NOT DISTINCT FROM OLD.asset_id
               AND NEW.resource_id IS NOT DISTINCT FROM OLD.resource_id)
        THEN
            RAISE EXCEPTION 'AUDIT_LOG_IMMUTABLE: audit log entries cannot be modified'
                USING ERRCODE = 'restrict_violation';
        END IF;
        RETURN NEW;
    END;
    $$;
    """,
    f"CREATE TRIGGER {UPDATE_TRIGGER} BEFORE UPDATE ON {TABLE} "
    f"FOR EACH ROW EXECUTE FUNCTION {FUNCTION}();",
    f"CREATE TRIGGER {DELETE_TRIGGER} BEFORE DELETE ON {TABLE} "
    f"FOR EACH ROW EXECUTE FUNCTION {FUNCTION}();",
    f"CREATE TRIGGER {TRUNCATE_TRIGGER} BEFORE TRUNCATE ON {TABLE} "
    f"FOR EACH STATEMENT EXECUTE FUNCTION {FUNCTION}();",
]

POSTGRES_UNINSTALL = [
    f"DROP TRIGGER IF EXISTS {TRUNCATE_TRIGGER} ON {TABLE};",
    f"DROP TRIGGER IF EXISTS {DELETE_TRIGGER} ON {TABLE};",
    f"DROP TRIGGER IF EXISTS {UPDATE_TRIGGER} ON {TABLE};",
    f"DROP FUNCTION IF EXISTS {FUNCTION}();",
]

SQLITE_INSTALL = [
    f"""
    CREATE TRIGGER {UPDATE_TRIGGER} BEFORE UPDATE ON {TABLE}
    WHEN NOT (
        NEW.id IS OLD.id
        AND NEW.user_id IS OLD.user_id
        AND NEW.action IS OLD.action
        AND NEW.resource_type IS OLD.resource_type
        AND NEW.metadata IS OLD.metadata
        AND NEW.ip_address IS OLD.ip_address
        AND NEW.user_agent IS OLD.user_agent
        AND NEW.created_at IS OLD.created_at
        AND (NEW.asset_id IS OLD.asset_id OR NEW.asset_id IS NULL)
        AND (NEW.resource_id IS OLD.resource_id
             OR (NEW.resource_id IS NULL AND NEW.asset_id IS NULL AND OLD.resource_type = 'ASSET'))
        AND (NEW.asset_id IS NOT OLD.asset_id OR NEW.resource_id IS NOT OLD.resource_id)
    )
    BEGIN
        SELECT RAISE(ABORT, 'AUDIT_LOG_IMMUTABLE: audit log entries cannot be modified');
    END;
    """,
    f"""
    CREATE TRIGGER {DELETE_TRIGGER} BEFORE DELETE ON {TABLE}
    BEGIN
        SELECT RAISE(ABORT, 'AUDIT_LOG_IMMUTABLE: audit log entries cannot be deleted');
    END;
    """,
]

SQLITE_UNINSTALL = [
    f"DROP TRIGGER IF EXISTS {DELETE_TRIGGER};",
    f"DROP TRIGGER IF EXISTS {UPDATE_TRIGGER};",
]

REQUIRED_TRIGGERS = frozenset({UPDATE_TRIGGER, DELETE_TRIGGER})


def _statements(vendor: str, install: bool) -> List[str]:
    if vendor == "postgresql":
        return POSTGRES_INSTALL if install else POSTGRES_UNINSTALL
    if vendor == "sqlite":
        return SQLITE_INSTALL if install else SQLITE_UNINSTALL
    raise ImproperlyConfigured(
        f"Audit log immutability triggers are not available for the '{vendor}' backend."
    )


def install(connection) -> None:
    statements = _statements(connection.vendor, install=True)
    with connection.cursor() as cursor:
        for statement in statements:
            cursor.execute(statement)


def uninstall(connection) -> None:
    statements = _statements(connection.vendor, install=False)
    with connection.cursor() as cursor:
        for statement in statements:
            cursor.execute(statement)


def installed_triggers(connection) -> set:
    """Names of the guard triggers currently present on the audit table."""

    if connection.vendor == "postgresql":
        sql = (
            "SELECT tgname FROM pg_trigger "
            "WHERE tgrelid = %s::regclass AND NOT tgisinternal"
        )
    elif connection.vendor == "sqlite":
        sql = "SELECT name FROM sqlite_master WHERE type = 'trigger' AND tbl_name = %s"
    else:
        return set()
    with connection.cursor() as cursor:
        cursor.execute(sql, [TABLE])
        return {row[0] for row in cursor.fetchall()}


def missing_triggers(connection) -> set:
    return set(REQUIRED_TRIGGERS) - installed_triggers(connection)
