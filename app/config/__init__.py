# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, ASGI/WSGI applications and the Celery app.
#
# The Celery app is imported here so that shared tasks bind to it when Django
# starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
