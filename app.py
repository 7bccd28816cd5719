# /app.py

from catalog_scan import app, db, scanner
from catalog_scan.models import BlobEntry, CatalogUpload, UploadOutcome

@app.shell_context_processor
def make_shell_context():
    """Create a shell context for the application -
    for working with the Catalog Scan database and scanner service in the Flask shell"""
    return {
        'db': db,
        'scanner': scanner,
        'BlobEntry': BlobEntry,
        'CatalogUpload': CatalogUpload,
        'UploadOutcome': UploadOutcome,
    }
