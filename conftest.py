"""
Root pytest configuration.

Django is bootstrapped by app/conftest.py; the app directory is put on
sys.path through ``pythonpath`` in pyproject.toml.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
