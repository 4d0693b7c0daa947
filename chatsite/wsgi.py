"""
WSGI config for chatsite project.

Exposes the WSGI callable as a module-level variable named ``application``.
gunicorn picks it up via ``gunicorn chatsite.wsgi``.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'chatsite.settings')

application = get_wsgi_application()
