"""
ASGI config for the hims project.

The back office only serves HTTP, so this is Django's plain ASGI app.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hims.settings")

application = get_asgi_application()
