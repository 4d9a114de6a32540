"""WSGI entrypoint for the funding gateway."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "funding_gateway.settings")

application = get_wsgi_application()
