# backend/settings/__init__.py
"""
Settings are split by environment and chosen with DJANGO_SETTINGS_MODULE:

    backend.settings.dev    local runs and the test suite (pytest.ini_options)
    backend.settings.prod   Postgres, WhiteNoise, TLS proxy

Nothing is imported here so that neither module is loaded by accident.
"""
