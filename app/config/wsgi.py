"""
WSGI config for the settlement service.

Provided for traditional WSGI servers; the primary entry point is ASGI via
Uvicorn.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
