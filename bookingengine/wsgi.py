"""
WSGI config for the Booking Engine project.

It exposes the WSGI callable as a module-level variable named `application`.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bookingengine.settings.development")

application = get_wsgi_application()
