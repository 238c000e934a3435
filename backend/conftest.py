import itertools

import pytest
from rest_framework.test import APIClient

from accounts.models import Company, Team, User, UserRole
from assets.models import Asset, AssetStatus, AssetType, UploadType, VisibilityLevel

_sequence = itertools.count(1)


@pytest.fixture
def make_user(db):
    def _make_user(role=UserRole.CONTENT_CREATOR, company=None, is_active=True, username=None, **extra):
        username = username or f"user{next(_sequence)}"
        return User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="Str0ng-pass-123",
            role=role,
            company=company,
            is_active=is_active,
            is_activated=True,
            **extra,
        )

    return _make_user


@pytest.fixture
def company(db):
    return Company.objects.create(name="Acme")


@pytest.fixture
def other_company(db):
    return Company.objects.create(name="Globex")


@pytest.fixture
def admin_user(make_user):
    return make_user(role=UserRole.ADMIN, username="admin")


@pytest.fixture
def creator(make_user, company):
    return make_user(role=UserRole.CONTENT_CREATOR, company=company, username="creator")


@pytest.fixture
def seo_user(make_user, company):
    return make_user(role=UserRole.SEO_SPECIALIST, company=company, username="seo")


@pytest.fixture
def make_team(db):
    def _make_team(name, members=(), company=None):
        team = Team.objects.create(name=name, company=company)
        team.members.set(members)
        return team

    return _make_team


@pytest.fixture
def make_asset(db):
    def _make_asset(uploader, **fields):
        values = {
            "title": f"Asset {next(_sequence)}",
            "asset_type": AssetType.IMAGE,
            "upload_type": UploadType.SEO,
            "status": AssetStatus.DRAFT,
            "visibility": VisibilityLevel.UPLOADER_ONLY,
            "storage_url": "s3://bucket/banner.png",
            "company": uploader.company,
        }
        values.update(fields)
        return Asset.objects.create(uploader=uploader, **values)

    return _make_asset


@pytest.fixture
def api_client():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client

    return _client
