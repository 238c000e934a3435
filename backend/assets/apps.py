"""Configuration for the app that stores and reviews marketing assets."""

from django.apps import AppConfig


class AssetsConfig(AppConfig):
    """Keep Django informed about the assets app and its responsibilities."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "assets"
    verbose_name = "Digital Asset Management"
