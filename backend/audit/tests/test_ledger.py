import uuid
from datetime import timedelta

import pytest
from django.db import DatabaseError as DjangoDatabaseError
from django.utils import timezone
from prometheus_client import REGISTRY

from accounts.models import User
from assethub.errors import ValidationError
from audit.context import AuditContext, build_audit_context
from audit.ledger import AuditLedger, AuditLogFilters, AuditWriteError
from audit.models import AuditAction, AuditLogEntry, ResourceType


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def ledger():
    return AuditLedger()


@pytest.mark.django_db
def test_append_returns_persisted_entry(ledger, admin_user):
    entry = ledger.append(
        user=admin_user,
        action=AuditAction.CREATE,
        resource_type=ResourceType.USER,
        resource_id=42,
        metadata={"email": "new@example.com", "when": timezone.now()},
        ip_address="10.0.0.1",
        user_agent="pytest",
    )

    stored = AuditLogEntry.objects.get(pk=entry.pk)
    assert stored.resource_id == "42"
    assert stored.user_id == admin_user.pk
    assert stored.metadata["email"] == "new@example.com"
    assert stored.ip_address == "10.0.0.1"
    assert stored.asset_id is None
    assert stored.created_at is not None


@pytest.mark.django_db
def test_appended_metadata_matches_what_is_read_back(ledger, admin_user):
    nested = {"ids": (1, 2)}
    metadata = {"company_id": uuid.uuid4(), "when": timezone.now(), "nested": nested}

    entry = ledger.append(
        user=admin_user,
        action=AuditAction.UPDATE,
        resource_type=ResourceType.COMPANY,
        resource_id="c-1",
        metadata=metadata,
    )
    nested["ids"] = (3,)

    assert entry.metadata == ledger.find_by_id(entry.pk).metadata
    assert entry.metadata["company_id"] == str(metadata["company_id"])
    assert entry.metadata["nested"] == {"ids": [1, 2]}


@pytest.mark.django_db
def test_metadata_that_cannot_be_stored_is_rejected(ledger, admin_user):
    with pytest.raises(ValidationError) as excinfo:
        ledger.append(
            user=admin_user,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.COMPANY,
            resource_id="c-1",
            metadata={"payload": object()},
        )

    assert "metadata" in excinfo.value.fields
    assert not AuditLogEntry.objects.exists()


@pytest.mark.django_db
def test_append_accepts_plain_strings_for_choices(ledger, admin_user):
    entry = ledger.append(user=admin_user, action="VIEW", resource_type="COMPANY", resource_id=None)
    assert entry.action == AuditAction.VIEW
    assert entry.resource_id is None


@pytest.mark.django_db
def test_append_rejects_unknown_action(ledger, admin_user):
    with pytest.raises(ValidationError) as excinfo:
        ledger.append(user=admin_user, action="PURGE", resource_type=ResourceType.USER, resource_id=1)

    assert "action" in excinfo.value.fields
    assert not AuditLogEntry.objects.exists()


@pytest.mark.django_db
def test_append_requires_persisted_user(ledger):
    with pytest.raises(ValidationError):
        ledger.append(user=None, action=AuditAction.VIEW, resource_type=ResourceType.ASSET, resource_id="x")
    with pytest.raises(ValidationError):
        ledger.append(user=User(username="ghost"), action=AuditAction.VIEW, resource_type=ResourceType.ASSET, resource_id="x")


@pytest.mark.django_db
def test_append_truncates_long_user_agent(ledger, admin_user):
    entry = ledger.append(
        user=admin_user, action=AuditAction.VIEW, resource_type=ResourceType.USER,
        resource_id=1, user_agent="x" * 2000,
    )
    assert len(entry.user_agent) == 512


@pytest.mark.django_db
def test_asset_entries_link_to_existing_asset(ledger, creator, make_asset):
    asset = make_asset(creator)

    linked = ledger.append(user=creator, action=AuditAction.UPLOAD, resource_type=ResourceType.ASSET, resource_id=asset.pk)
    missing = ledger.append(
        user=creator, action=AuditAction.DELETE, resource_type=ResourceType.ASSET,
        resource_id="5f0c3a52-0000-4000-8000-000000000000",
    )
    not_uuid = ledger.append(user=creator, action=AuditAction.VIEW, resource_type=ResourceType.ASSET, resource_id="legacy-7")
    other_type = ledger.append(user=creator, action=AuditAction.VIEW, resource_type=ResourceType.USER, resource_id=asset.pk)

    assert linked.asset_id == asset.pk
    assert missing.asset_id is None
    assert not_uuid.asset_id is None
    assert other_type.asset_id is None


@pytest.mark.django_db
def test_append_counts_successes(ledger, admin_user):
    before = _sample("audit_log_append_total", action="APPROVE", resource_type="ASSET")
    ledger.append(user=admin_user, action=AuditAction.APPROVE, resource_type=ResourceType.ASSET, resource_id="a")
    assert _sample("audit_log_append_total", action="APPROVE", resource_type="ASSET") == before + 1


@pytest.mark.django_db
def test_storage_failure_raises_retryable_write_error(ledger, admin_user, monkeypatch, caplog):
    def broken_save(self, *args, **kwargs):
        raise DjangoDatabaseError("disk full")

    monkeypatch.setattr(AuditLogEntry, "save", broken_save)
    before = _sample("audit_log_append_failure_total", action="REJECT", resource_type="ASSET")

    with pytest.raises(AuditWriteError) as excinfo:
        ledger.append(user=admin_user, action=AuditAction.REJECT, resource_type=ResourceType.ASSET, resource_id="a")

    assert excinfo.value.retryable is True
    assert excinfo.value.status_code == 503
    assert _sample("audit_log_append_failure_total", action="REJECT", resource_type="ASSET") == before + 1
    assert any(getattr(record, "error_code", None) == "AUDIT_WRITE_FAILED" for record in caplog.records)


@pytest.fixture
def history(ledger, admin_user, creator):
    entries = [
        ledger.append(user=admin_user, action=AuditAction.CREATE, resource_type=ResourceType.USER, resource_id=creator.pk),
        ledger.append(user=creator, action=AuditAction.UPLOAD, resource_type=ResourceType.ASSET, resource_id="asset-1"),
        ledger.append(user=admin_user, action=AuditAction.APPROVE, resource_type=ResourceType.ASSET, resource_id="asset-1"),
        ledger.append(user=creator, action=AuditAction.DOWNLOAD, resource_type=ResourceType.ASSET, resource_id="asset-2"),
        ledger.append(user=admin_user, action=AuditAction.UPDATE, resource_type=ResourceType.COMPANY, resource_id="c-1"),
    ]
    return entries


@pytest.mark.django_db
def test_list_returns_newest_first(ledger, history):
    page = ledger.list()

    assert page.total == 5
    assert [entry.pk for entry in page.entries] == [entry.pk for entry in reversed(history)]
    assert page.has_next is False


@pytest.mark.django_db
def test_list_filters_combine(ledger, history, admin_user):
    page = ledger.list(AuditLogFilters(user_id=admin_user.pk, resource_type="ASSET"))
    assert [entry.action for entry in page.entries] == [AuditAction.APPROVE]

    page = ledger.list(AuditLogFilters(resource_id="asset-1"))
    assert {entry.action for entry in page.entries} == {AuditAction.UPLOAD, AuditAction.APPROVE}

    page = ledger.list(AuditLogFilters(action=AuditAction.DOWNLOAD))
    assert page.total == 1


@pytest.mark.django_db
def test_list_filters_by_date_range(ledger, history):
    now = timezone.now()
    assert ledger.list(AuditLogFilters(date_from=now - timedelta(minutes=5), date_to=now + timedelta(minutes=5))).total == 5
    assert ledger.list(AuditLogFilters(date_to=now - timedelta(days=1))).total == 0


@pytest.mark.django_db
def test_list_pages_through_results(ledger, history):
    first = ledger.list(page=1, limit=2)
    third = ledger.list(page=3, limit=2)

    assert len(first.entries) == 2
    assert first.has_next is True
    assert [entry.pk for entry in third.entries] == [history[0].pk]
    assert third.has_next is False


@pytest.mark.django_db
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 10_000)])
def test_list_rejects_out_of_range_paging(ledger, page, limit):
    with pytest.raises(ValidationError):
        ledger.list(page=page, limit=limit)


@pytest.mark.django_db
def test_list_rejects_unknown_action_filter(ledger):
    with pytest.raises(ValidationError):
        ledger.list(AuditLogFilters(action="PURGE"))


@pytest.mark.django_db
def test_find_by_id(ledger, history):
    assert ledger.find_by_id(history[2].pk).action == AuditAction.APPROVE
    assert ledger.find_by_id(str(history[2].pk)).pk == history[2].pk
    assert ledger.find_by_id(999_999) is None
    assert ledger.find_by_id("not-a-number") is None


def test_audit_context_from_request(rf):
    request = rf.get(
        "/api/assets/",
        HTTP_USER_AGENT="Mozilla/5.0",
        HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1",
        HTTP_X_REQUEST_ID="req-1",
    )

    context = build_audit_context(request)

    assert context == AuditContext(ip_address="203.0.113.9", user_agent="Mozilla/5.0", request_id="req-1")
    assert context.as_kwargs() == {"ip_address": "203.0.113.9", "user_agent": "Mozilla/5.0"}
