"""
WSGI config for the schooladmin project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'schooladmin.settings')

application = get_wsgi_application()
