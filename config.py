"""
Configuration for the Local Library catalog.

Every setting can be overridden through a CATALOG_* environment variable;
tests pass an explicit mapping to create_app() instead.
"""

import os


basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """
    Default Flask configuration, read once at import time.
    """
    SECRET_KEY = os.getenv("CATALOG_SECRET_KEY", "dev-secret-key")     # For flash messages (dev only).

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "CATALOG_DATABASE_URL",
        f"sqlite:///{os.path.join(basedir, 'data/library.sqlite')}",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound for concurrent lookups issued by a single request.
    FAN_OUT_MAX_WORKERS = int(os.getenv("CATALOG_FAN_OUT_MAX_WORKERS", "8"))

    OPENLIBRARY_URL = os.getenv("CATALOG_OPENLIBRARY_URL", "https://openlibrary.org")
    OPENLIBRARY_TIMEOUT = float(os.getenv("CATALOG_OPENLIBRARY_TIMEOUT", "8"))

    LOG_LEVEL = os.getenv("CATALOG_LOG_LEVEL", "INFO").upper()
