"""
Environment lookups shared by the database and storage layers.

Explicit constructor arguments always take precedence; these helpers only
supply the fallbacks.
"""

import os
from typing import Optional


def get_environment() -> str:
    """Get the deployment environment name, defaulting to development."""
    return os.getenv("PGCRUD_ENV", "development").lower()


def is_production() -> bool:
    return get_environment() == "production"


def get_database_url() -> Optional[str]:
    """Get the PostgreSQL DSN used when none is passed explicitly."""
    return os.getenv("POSTGRES_CONNECTION_STRING")


def get_storage_endpoint() -> Optional[str]:
    return os.getenv("R2_ENDPOINT")


def get_storage_credentials() -> tuple[Optional[str], Optional[str]]:
    """Get the (access key id, secret access key) pair for the object store."""
    return os.getenv("R2_ACCESS_KEY_ID"), os.getenv("R2_SECRET_ACCESS_KEY")


def get_storage_base_url() -> str:
    """Get the public base URL uploaded objects are served from."""
    return os.getenv("STORAGE_DOMAIN") or os.getenv("STORAGE_URL") or ""
