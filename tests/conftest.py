import os
import sys
import tempfile
from pathlib import Path

import pytest


# Ensure the project root (repo folder) is importable when running pytest.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The application is defined as a global in catalog_scan/__init__.py and reads
# configuration from environment variables at import time, so the environment
# must be in place before any test module imports the package.
_DATA_DIR = tempfile.mkdtemp(prefix="catalog_scan_test_")

os.environ["APP_MODE"] = "config.DevConfig"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_SERVER_OS"] = "Linux"

# Force temp persistence so tests never touch the developer's real data.
os.environ["CATALOG_SCAN_FOLDER"] = _DATA_DIR
os.environ["CATALOG_SCAN_DB_FILE_NAME"] = "test.sqlite"
os.environ["CATALOG_SCAN_LOG_FILE"] = str(Path(_DATA_DIR) / "test.log")


CSV_HEADER = "BARCODE,PRODUCTNAME,UOM,SELLPRICE\n"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def app():
    import catalog_scan  # noqa: E402

    return catalog_scan.app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def db(app):
    import catalog_scan  # noqa: E402

    with app.app_context():
        yield catalog_scan.db
        catalog_scan.db.session.remove()


@pytest.fixture()
def scanner(app):
    """The app's scanner service, reset to an empty catalog and list."""
    service = app.extensions["catalog_scan"]
    with app.app_context():
        service.stop_scan()
        service.clear_list()
        service.clear_catalog()
        service.scan_status.reset()
        service.manual_status.reset()
    yield service
    with app.app_context():
        service.stop_scan()
        service.clear_list()
        service.clear_catalog()
