# config.py
"""Catalog Scan - Flask Application configuration."""

# Python imports
from os import environ, path

# Third-party imports
from dotenv import load_dotenv

# Local imports

# Load environment variables from .env file
basedir = path.abspath(path.dirname(__file__))
load_dotenv(path.join(basedir, ".env"))


class Config:
    """Base config."""

    SECRET_KEY = environ.get("SECRET_KEY")

    # Default persistence location for local dev.
    CATALOG_SCAN_FOLDER = environ.get("CATALOG_SCAN_FOLDER") or path.join(basedir, "catalog_data")
    CATALOG_SCAN_DB_FILE_NAME = environ.get("CATALOG_SCAN_DB_FILE_NAME") or "catalog_scan.sqlite"
    CATALOG_SCAN_LOG_FILE = (
        environ.get("CATALOG_SCAN_LOG_FILE")
        or path.join(CATALOG_SCAN_FOLDER, "catalog_scan.log")
    )

    APP_SERVER_OS = environ.get("APP_SERVER_OS") or "Linux"

    # Catalog persistence (single blob key, size cap like a browser storage quota)
    CATALOG_STORAGE_KEY = environ.get("CATALOG_STORAGE_KEY") or "barcodeScannerProductData"
    CATALOG_MAX_BYTES = int(environ.get("CATALOG_MAX_BYTES") or 5 * 1024 * 1024)

    # Seconds before a transient status reverts to its idle prompt
    SCAN_STATUS_SECONDS = float(environ.get("SCAN_STATUS_SECONDS") or 2)
    DECODER_ERROR_STATUS_SECONDS = float(environ.get("DECODER_ERROR_STATUS_SECONDS") or 3)
    MANUAL_STATUS_SECONDS = float(environ.get("MANUAL_STATUS_SECONDS") or 3)
    HIGHLIGHT_SECONDS = float(environ.get("HIGHLIGHT_SECONDS") or 1)

    # Server-attached camera used by `flask scan camera`
    CAMERA_INDEX = int(environ.get("CAMERA_INDEX") or 0)

    # Largest accepted CSV upload
    MAX_CONTENT_LENGTH = int(environ.get("MAX_CONTENT_LENGTH") or 16 * 1024 * 1024)


class ProdConfig(Config):
    """Production System Configuration"""

    FLASK_ENV = "production"
    DEBUG = False
    TESTING = False
    LOG_LINES_TO_SHOW = "164"


class DevConfig(Config):
    """Development System Configuration"""

    FLASK_ENV = "development"
    DEBUG = True
    TESTING = True
    LOG_LINES_TO_SHOW = "164"
