import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class AssetType(models.TextChoices):
    IMAGE = "IMAGE", "Image"
    VIDEO = "VIDEO", "Video"
    DOCUMENT = "DOCUMENT", "Document"
    LINK = "LINK", "Link"
    CAROUSEL = "CAROUSEL", "Carousel"


class UploadType(models.TextChoices):
    SEO = "SEO", "SEO"
    DOC = "DOC", "Doc"


class AssetStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PENDING_REVIEW = "PENDING_REVIEW", "Pending review"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class VisibilityLevel(models.TextChoices):
    UPLOADER_ONLY = "UPLOADER_ONLY", "Uploader only"
    ADMIN_ONLY = "ADMIN_ONLY", "Admin only"
    COMPANY = "COMPANY", "Company"
    TEAM = "TEAM", "Team"
    ROLE = "ROLE", "Role"
    SELECTED_USERS = "SELECTED_USERS", "Selected users"
    PUBLIC = "PUBLIC", "Public"


class Platform(models.TextChoices):
    X = "X", "X"
    LINKEDIN = "LINKEDIN", "LinkedIn"
    INSTAGRAM = "INSTAGRAM", "Instagram"
    META_ADS = "META_ADS", "Meta Ads"
    YOUTUBE = "YOUTUBE", "YouTube"
    ADS = "ADS", "Ads"
    META = "META", "Meta"
    SEO = "SEO", "SEO"
    BLOGS = "BLOGS", "Blogs"
    SNAPCHAT = "SNAPCHAT", "Snapchat"


class Asset(models.Model):
    """Marketing artifact moving through the review workflow."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    tags = models.JSONField(default=list, blank=True)
    asset_type = models.CharField(max_length=16, choices=AssetType.choices)
    upload_type = models.CharField(max_length=8, choices=UploadType.choices)
    status = models.CharField(
        max_length=16, choices=AssetStatus.choices, default=AssetStatus.DRAFT, db_index=True
    )
    visibility = models.CharField(
        max_length=16,
        choices=VisibilityLevel.choices,
        default=VisibilityLevel.UPLOADER_ONLY,
        db_index=True,
    )
    # Set only when visibility is ROLE
    allowed_role = models.CharField(max_length=32, null=True, blank=True)
    company = models.ForeignKey(
        "accounts.Company",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assets",
    )
    uploader = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="uploaded_assets",
    )
    storage_url = models.CharField(max_length=1024)
    file_size = models.BigIntegerField(null=True, blank=True)
    mime_type = models.CharField(max_length=100, blank=True, default="")
    target_platforms = models.JSONField(default=list, blank=True)
    campaign_name = models.CharField(max_length=255, blank=True, default="")

    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_assets",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rejected_assets",
    )
    rejection_reason = models.TextField(blank=True, default="")

    uploaded_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-uploaded_at",)
        indexes = [
            models.Index(fields=("uploader", "-uploaded_at"), name="asset_uploader_recent_idx"),
            models.Index(fields=("company", "visibility"), name="asset_company_visibility_idx"),
            models.Index(fields=("upload_type", "status"), name="asset_upload_type_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(visibility=VisibilityLevel.ROLE, allowed_role__isnull=False)
                    | (~Q(visibility=VisibilityLevel.ROLE) & Q(allowed_role__isnull=True))
                ),
                name="asset_allowed_role_matches_visibility",
            ),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        super().clean()
        if self.visibility == VisibilityLevel.ROLE and not self.allowed_role:
            raise ValidationError({"allowed_role": "Required when visibility is ROLE."})
        if self.visibility != VisibilityLevel.ROLE and self.allowed_role:
            raise ValidationError({"allowed_role": "Only allowed when visibility is ROLE."})


class AssetVersion(models.Model):
    """Snapshot of a prior upload; written once, never changed."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="versions")
    version_number = models.PositiveIntegerField()
    storage_url = models.CharField(max_length=1024)
    file_size = models.BigIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="asset_versions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("asset", "version_number")
        constraints = [
            models.UniqueConstraint(fields=("asset", "version_number"), name="asset_version_number_unique"),
        ]

    def __str__(self):
        return f"{self.asset_id} v{self.version_number}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Asset versions are immutable.")
        super().save(*args, **kwargs)


class AssetShare(models.Model):
    class TargetType(models.TextChoices):
        USER = "USER", "User"
        TEAM = "TEAM", "Team"

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="shares")
    shared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="asset_shares_given",
    )
    target_type = models.CharField(max_length=8, choices=TargetType.choices, default=TargetType.USER)
    shared_with = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="asset_shares_received",
    )
    team = models.ForeignKey(
        "accounts.Team",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="asset_shares",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(target_type="USER", shared_with__isnull=False, team__isnull=True)
                    | Q(target_type="TEAM", shared_with__isnull=True, team__isnull=False)
                ),
                name="asset_share_single_target",
            ),
            models.UniqueConstraint(
                fields=("asset", "shared_with"),
                condition=Q(shared_with__isnull=False),
                name="asset_share_user_unique",
            ),
            models.UniqueConstraint(
                fields=("asset", "team"),
                condition=Q(team__isnull=False),
                name="asset_share_team_unique",
            ),
        ]

    def __str__(self):
        target = self.shared_with_id if self.target_type == self.TargetType.USER else self.team_id
        return f"{self.asset_id} -> {self.target_type}:{target}"


class CarouselItem(models.Model):
    class ItemType(models.TextChoices):
        IMAGE = "IMAGE", "Image"
        VIDEO = "VIDEO", "Video"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="carousel_items")
    storage_url = models.CharField(max_length=1024)
    item_type = models.CharField(max_length=8, choices=ItemType.choices)
    file_size = models.BigIntegerField(null=True, blank=True)
    mime_type = models.CharField(max_length=100, blank=True, default="")
    order = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("asset", "order")
        constraints = [
            models.UniqueConstraint(fields=("asset", "order"), name="carousel_item_order_unique"),
        ]


class Approval(models.Model):
    """Review decision history for an asset."""

    class Action(models.TextChoices):
        APPROVE = "APPROVE", "Approve"
        REJECT = "REJECT", "Reject"

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="approvals")
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reviews",
    )
    action = models.CharField(max_length=8, choices=Action.choices)
    reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)


class AssetDownload(models.Model):
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="downloads")
    downloaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="asset_downloads",
    )
    platforms = models.JSONField(default=list, blank=True)
    downloaded_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ("-downloaded_at",)


class PlatformUsage(models.Model):
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="platform_usages")
    platform = models.CharField(max_length=16, choices=Platform.choices)
    campaign_name = models.CharField(max_length=255)
    post_url = models.URLField(max_length=1024, blank=True, default="")
    logged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="platform_usages",
    )
    used_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-used_at",)
