import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class UserRole(models.TextChoices):
    ADMIN = "ADMIN", "Admin"
    CONTENT_CREATOR = "CONTENT_CREATOR", "Content creator"
    SEO_SPECIALIST = "SEO_SPECIALIST", "SEO specialist"


class Company(models.Model):
    """
    Client company that owns marketing assets.

    Assets with COMPANY visibility are shared with every user attached to
    the same company.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "company"
        ordering = ("name",)
        verbose_name_plural = "Companies"

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    User model

    ``role`` drives review rights and ROLE visibility; ``is_active`` is
    cleared on deactivation, which withdraws every permission grant while
    keeping the user's audit history.
    """
    email = models.EmailField(unique=True)
    is_active = models.BooleanField(default=True)
    role = models.CharField(
        max_length=32,
        choices=UserRole.choices,
        default=UserRole.CONTENT_CREATOR,
        db_index=True,
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )
    # Account activation (admin-created accounts set their own password)
    is_activated = models.BooleanField(default=False)
    activated_at = models.DateTimeField(blank=True, null=True)
    activation_code = models.CharField(max_length=64, unique=True, blank=True, null=True)
    activation_code_expires_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email']

    class Meta:
        db_table = 'user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.username

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def activation_code_is_valid(self, now=None) -> bool:
        if not self.activation_code or self.is_activated:
            return False
        if self.activation_code_expires_at is None:
            return True
        return (now or timezone.now()) < self.activation_code_expires_at


class Team(models.Model):
    """Group of users that TEAM-visibility assets can be shared with."""

    name = models.CharField(max_length=200)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="teams",
    )
    members = models.ManyToManyField(User, related_name="teams", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "team"
        ordering = ("name",)
        constraints = [
            models.UniqueConstraint(fields=("company", "name"), name="team_company_name_unique"),
        ]

    def __str__(self):
        return self.name
