"""
Django app configuration for engagements.
"""

from django.apps import AppConfig


class EngagementsConfig(AppConfig):
    """Configuration for the engagements application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "engagements"
    verbose_name = "Engagements"
