"""
Root pytest configuration.

Puts the Django project (app/) on the import path and provides the
environment the settings module requires, before pytest-django or any
app conftest touches Django. Project-wide hooks live in app/conftest.py.
"""

import os
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost")
# Test clients speak plain HTTP; keep the production HTTPS redirect off
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
