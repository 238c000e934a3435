from urllib.parse import parse_qs, urlsplit

from rest_framework.test import APIClient, APITestCase

from accounts.models import Company, Team, User, UserRole
from assets.models import Asset, AssetDownload, AssetShare, AssetStatus, AssetType, UploadType, VisibilityLevel
from audit.models import AuditAction, AuditLogEntry


class AssetApiTestCase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = Company.objects.create(name="Acme")
        self.admin = self._user("admin", UserRole.ADMIN)
        self.creator = self._user("alice", UserRole.CONTENT_CREATOR, company=self.company)
        self.colleague = self._user("bob", UserRole.CONTENT_CREATOR, company=self.company)
        self.seo = self._user("sam", UserRole.SEO_SPECIALIST, company=self.company)
        self.outsider = self._user("olga", UserRole.CONTENT_CREATOR)

    def _user(self, username, role, company=None):
        return User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="password123",
            role=role,
            company=company,
            is_activated=True,
        )

    def _asset(self, uploader=None, **fields):
        uploader = uploader or self.creator
        values = {
            "title": "Spring banner",
            "asset_type": AssetType.IMAGE,
            "upload_type": UploadType.SEO,
            "status": AssetStatus.DRAFT,
            "visibility": VisibilityLevel.UPLOADER_ONLY,
            "storage_url": "s3://bucket/spring.png",
            "company": self.company,
        }
        values.update(fields)
        return Asset.objects.create(uploader=uploader, **values)

    def _results(self, response):
        return response.data.get("results", response.data)


class AssetListAndDetailTests(AssetApiTestCase):
    def test_list_requires_authentication(self):
        response = self.client.get("/api/assets/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["code"], "AUTHENTICATION_REQUIRED")

    def test_list_shows_only_visible_assets(self):
        own = self._asset()
        company_asset = self._asset(visibility=VisibilityLevel.COMPANY)
        self._asset(visibility=VisibilityLevel.ADMIN_ONLY)

        self.client.force_authenticate(self.colleague)
        response = self.client.get("/api/assets/")

        self.assertEqual(response.status_code, 200)
        ids = {item["id"] for item in self._results(response)}
        self.assertSetEqual(ids, {str(company_asset.pk)})
        self.assertNotIn(str(own.pk), ids)

    def test_list_filters_by_status_and_search(self):
        approved = self._asset(title="Summer sale", status=AssetStatus.APPROVED, visibility=VisibilityLevel.PUBLIC)
        self._asset(title="Winter sale", visibility=VisibilityLevel.PUBLIC)

        self.client.force_authenticate(self.colleague)
        response = self.client.get("/api/assets/", {"status": "APPROVED", "search": "summer"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["id"] for item in self._results(response)], [str(approved.pk)])

    def test_seo_specialist_lists_only_approved_assets_of_others(self):
        draft = self._asset(visibility=VisibilityLevel.PUBLIC)
        approved = self._asset(visibility=VisibilityLevel.PUBLIC, status=AssetStatus.APPROVED)

        self.client.force_authenticate(self.seo)
        response = self.client.get("/api/assets/")

        ids = {item["id"] for item in self._results(response)}
        self.assertIn(str(approved.pk), ids)
        self.assertNotIn(str(draft.pk), ids)

    def test_seo_route_lists_seo_assets_under_full_visibility_rules(self):
        role_asset = self._asset(
            visibility=VisibilityLevel.ROLE,
            allowed_role=UserRole.SEO_SPECIALIST,
            status=AssetStatus.APPROVED,
        )
        doc = self._asset(
            upload_type=UploadType.DOC, company=None, uploader=self.seo, asset_type=AssetType.DOCUMENT,
        )

        self.client.force_authenticate(self.seo)
        response = self.client.get("/api/assets/seo/")

        self.assertEqual(response.status_code, 200)
        ids = {item["id"] for item in self._results(response)}
        self.assertIn(str(role_asset.pk), ids)
        self.assertNotIn(str(doc.pk), ids)

    def test_detail_of_hidden_asset_is_forbidden(self):
        asset = self._asset()

        self.client.force_authenticate(self.outsider)
        response = self.client.get(f"/api/assets/{asset.pk}/")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "FORBIDDEN")

    def test_detail_of_missing_asset_is_not_found(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get("/api/assets/00000000-0000-0000-0000-000000000000/")
        self.assertEqual(response.status_code, 404)

    def test_detail_includes_permission_summary(self):
        asset = self._asset(visibility=VisibilityLevel.COMPANY)

        self.client.force_authenticate(self.colleague)
        response = self.client.get(f"/api/assets/{asset.pk}/")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["permissions"]["can_view"])
        self.assertFalse(response.data["permissions"]["can_edit"])

    def test_permissions_route_explains_decision(self):
        asset = self._asset(visibility=VisibilityLevel.COMPANY)

        self.client.force_authenticate(self.colleague)
        response = self.client.get(f"/api/assets/{asset.pk}/permissions/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["reason"], "same company")


class AssetWriteTests(AssetApiTestCase):
    def test_create_seo_asset(self):
        self.client.force_authenticate(self.creator)
        response = self.client.post(
            "/api/assets/",
            {
                "title": "Launch video",
                "asset_type": "VIDEO",
                "upload_type": "SEO",
                "storage_url": "s3://bucket/launch.mp4",
                "company": str(self.company.pk),
                "target_platforms": ["YOUTUBE"],
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["visibility"], VisibilityLevel.ADMIN_ONLY)
        self.assertEqual(response.data["status"], AssetStatus.DRAFT)
        self.assertTrue(
            AuditLogEntry.objects.filter(action=AuditAction.UPLOAD, resource_id=response.data["id"]).exists()
        )

    def test_create_with_invalid_payload_uses_error_shape(self):
        self.client.force_authenticate(self.creator)
        response = self.client.post("/api/assets/", {"title": ""}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertIn("title", response.data["fields"])

    def test_shared_user_can_view_but_not_edit(self):
        asset = self._asset(visibility=VisibilityLevel.SELECTED_USERS)
        AssetShare.objects.create(
            asset=asset, shared_by=self.creator, target_type=AssetShare.TargetType.USER, shared_with=self.colleague,
        )

        self.client.force_authenticate(self.colleague)
        self.assertEqual(self.client.get(f"/api/assets/{asset.pk}/").status_code, 200)
        response = self.client.patch(f"/api/assets/{asset.pk}/", {"title": "Hijacked"}, format="json")

        self.assertEqual(response.status_code, 403)
        asset.refresh_from_db()
        self.assertEqual(asset.title, "Spring banner")

    def test_uploader_edits_metadata(self):
        asset = self._asset()

        self.client.force_authenticate(self.creator)
        response = self.client.patch(f"/api/assets/{asset.pk}/", {"tags": ["spring", "sale"]}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["tags"], ["spring", "sale"])

    def test_uploader_deletes_draft(self):
        asset = self._asset()

        self.client.force_authenticate(self.creator)
        response = self.client.delete(f"/api/assets/{asset.pk}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Asset.objects.filter(pk=asset.pk).exists())
        entry = AuditLogEntry.objects.get(action=AuditAction.DELETE)
        self.assertIsNone(entry.asset_id)
        self.assertEqual(entry.metadata["title"], "Spring banner")


class ReviewWorkflowApiTests(AssetApiTestCase):
    def test_full_review_cycle(self):
        asset = self._asset()
        self.client.force_authenticate(self.creator)
        response = self.client.post(f"/api/assets/{asset.pk}/submit/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], AssetStatus.PENDING_REVIEW)

        self.client.force_authenticate(self.admin)
        pending = self.client.get("/api/assets/pending/")
        self.assertEqual([item["id"] for item in self._results(pending)], [str(asset.pk)])

        response = self.client.post(
            f"/api/assets/{asset.pk}/reject/", {"reason": "Logo too small"}, format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["rejection_reason"], "Logo too small")

        self.client.force_authenticate(self.creator)
        response = self.client.post(f"/api/assets/{asset.pk}/resubmit/")
        self.assertEqual(response.data["status"], AssetStatus.PENDING_REVIEW)

        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f"/api/assets/{asset.pk}/approve/", {"visibility": "COMPANY"}, format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], AssetStatus.APPROVED)
        self.assertEqual(response.data["visibility"], VisibilityLevel.COMPANY)
        self.assertEqual(AuditLogEntry.objects.filter(action=AuditAction.APPROVE).count(), 1)

    def test_non_admin_cannot_approve_or_see_queue(self):
        asset = self._asset(status=AssetStatus.PENDING_REVIEW)

        self.client.force_authenticate(self.creator)
        self.assertEqual(self.client.post(f"/api/assets/{asset.pk}/approve/").status_code, 403)
        self.assertEqual(self.client.get("/api/assets/pending/").status_code, 403)
        self.assertFalse(AuditLogEntry.objects.exists())

    def test_approving_approved_asset_conflicts(self):
        asset = self._asset(status=AssetStatus.APPROVED)

        self.client.force_authenticate(self.admin)
        response = self.client.post(f"/api/assets/{asset.pk}/approve/")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "CONFLICT")

    def test_revert_to_draft(self):
        asset = self._asset(status=AssetStatus.REJECTED, rejection_reason="Blurry")

        self.client.force_authenticate(self.creator)
        response = self.client.post(f"/api/assets/{asset.pk}/revert-to-draft/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], AssetStatus.DRAFT)

    def test_visibility_change_by_admin(self):
        asset = self._asset(visibility=VisibilityLevel.ADMIN_ONLY)

        self.client.force_authenticate(self.creator)
        self.assertEqual(
            self.client.post(f"/api/assets/{asset.pk}/visibility/", {"visibility": "PUBLIC"}, format="json").status_code,
            403,
        )

        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f"/api/assets/{asset.pk}/visibility/",
            {"visibility": "ROLE", "allowed_role": "SEO_SPECIALIST"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["allowed_role"], "SEO_SPECIALIST")


class DownloadApiTests(AssetApiTestCase):
    def test_signed_download_flow(self):
        asset = self._asset(visibility=VisibilityLevel.COMPANY)

        self.client.force_authenticate(self.colleague)
        response = self.client.post(
            f"/api/assets/{asset.pk}/download-url/", {"platforms": ["LINKEDIN"], "expires_in": 600}, format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(AssetDownload.objects.get().platforms, ["LINKEDIN"])
        self.assertTrue(AuditLogEntry.objects.filter(action=AuditAction.DOWNLOAD, user=self.colleague).exists())

        url = urlsplit(response.data["url"])
        token = parse_qs(url.query)["token"][0]
        anonymous = APIClient()
        download = anonymous.get(url.path, {"token": token})

        self.assertEqual(download.status_code, 200)
        self.assertEqual(download.data["storage_url"], "s3://bucket/spring.png")

    def test_download_with_bad_token_is_forbidden(self):
        asset = self._asset(visibility=VisibilityLevel.PUBLIC)
        response = APIClient().get(f"/api/assets/{asset.pk}/download/", {"token": "forged"})
        self.assertEqual(response.status_code, 403)

    def test_download_link_stops_working_when_access_is_lost(self):
        asset = self._asset(visibility=VisibilityLevel.COMPANY)
        self.client.force_authenticate(self.colleague)
        link = self.client.post(f"/api/assets/{asset.pk}/download-url/", {}, format="json").data["url"]

        asset.visibility = VisibilityLevel.UPLOADER_ONLY
        asset.save()

        url = urlsplit(link)
        response = APIClient().get(url.path, {"token": parse_qs(url.query)["token"][0]})
        self.assertEqual(response.status_code, 403)

    def test_hidden_asset_cannot_be_downloaded(self):
        asset = self._asset()

        self.client.force_authenticate(self.outsider)
        response = self.client.post(f"/api/assets/{asset.pk}/download-url/", {}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertFalse(AssetDownload.objects.exists())

    def test_download_history_lists_own_downloads(self):
        asset = self._asset(visibility=VisibilityLevel.PUBLIC)
        AssetDownload.objects.create(asset=asset, downloaded_by=self.colleague, platforms=["X"])
        AssetDownload.objects.create(asset=asset, downloaded_by=self.outsider, platforms=[])

        self.client.force_authenticate(self.colleague)
        response = self.client.get("/api/downloads/mine/")

        self.assertEqual(response.status_code, 200)
        results = self._results(response)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]["asset_title"], "Spring banner")


class NestedRouteTests(AssetApiTestCase):
    def test_versions_and_carousel_items(self):
        asset = self._asset(asset_type=AssetType.CAROUSEL)
        self.client.force_authenticate(self.creator)

        response = self.client.post(
            f"/api/assets/{asset.pk}/versions/", {"storage_url": "s3://bucket/spring-v2.png"}, format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["version_number"], 1)

        response = self.client.post(
            f"/api/assets/{asset.pk}/carousel-items/",
            {"items": [{"storage_url": "s3://bucket/slide-1.png", "item_type": "IMAGE"}]},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data[0]["order"], 0)

        listing = self.client.get(f"/api/assets/{asset.pk}/versions/")
        self.assertEqual(len(listing.data), 1)

    def test_versions_of_hidden_asset_are_forbidden(self):
        asset = self._asset()
        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(f"/api/assets/{asset.pk}/versions/").status_code, 403)

    def test_share_with_team_and_revoke(self):
        asset = self._asset(upload_type=UploadType.DOC, company=None, asset_type=AssetType.DOCUMENT)
        team = Team.objects.create(name="Design")
        team.members.add(self.outsider)

        self.client.force_authenticate(self.creator)
        response = self.client.post(f"/api/assets/{asset.pk}/shares/", {"team_id": team.pk}, format="json")
        self.assertEqual(response.status_code, 201)

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(f"/api/assets/{asset.pk}/").status_code, 200)

        self.client.force_authenticate(self.creator)
        share_id = response.data[0]["id"]
        self.assertEqual(self.client.delete(f"/api/assets/{asset.pk}/shares/{share_id}/").status_code, 204)

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(f"/api/assets/{asset.pk}/").status_code, 403)

    def test_only_uploader_manages_shares(self):
        asset = self._asset(upload_type=UploadType.DOC, company=None)
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f"/api/assets/{asset.pk}/shares/", {"user_ids": [self.colleague.pk]}, format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_platform_usage_log(self):
        asset = self._asset(status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY)
        self.client.force_authenticate(self.colleague)

        response = self.client.post(
            f"/api/assets/{asset.pk}/usage/",
            {"platform": "LINKEDIN", "campaign_name": "Spring", "post_url": "https://linkedin.com/p/1"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(self.client.get(f"/api/assets/{asset.pk}/usage/").data), 1)
