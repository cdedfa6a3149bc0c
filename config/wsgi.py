"""WSGI entry point of the booking engine.

WSGI servers run the production settings unless DJANGO_SETTINGS_MODULE
says otherwise; ``runserver`` goes through ``config.settings.dev``.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.prod')

application = get_wsgi_application()
