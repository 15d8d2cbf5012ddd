"""Environment-driven defaults for the application factory.

Values come from the process environment (``.env`` loaded by python-dotenv in
``create_app``); explicit overrides passed to ``create_app`` win.
"""
import os
from datetime import timedelta

_TRUTHY = {'1', 'true', 'yes', 'on'}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def load_settings() -> dict:
    return {
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(minutes=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_MINUTES', '60'))),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        # Manager / recipient manager must share the department of the party they approve for
        'ENFORCE_DEPARTMENT_SCOPE': env_flag('ENFORCE_DEPARTMENT_SCOPE', False),
        'DEFAULT_PAGE_LIMIT': int(os.getenv('DEFAULT_PAGE_LIMIT', '50')),
        'MAX_PAGE_LIMIT': int(os.getenv('MAX_PAGE_LIMIT', '200')),
    }
