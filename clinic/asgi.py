"""
ASGI config for the clinic project.

Plain HTTP only; served by any ASGI server (uvicorn, daphne).
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinic.settings")

application = get_asgi_application()
