# /catalog_scan/error_pages/handlers.py

# Third-party imports
from flask import Blueprint, jsonify, render_template, request


# Local imports
from catalog_scan import app

# blueprint router configuration
error_pages = Blueprint("error_pages", __name__)

def log_message(message):
    """Helper function to prefix Log messages with the source IP address"""
    source_ip = (
        request.headers.get("X-Forwarded-For", request.remote_addr)
        .split(",")[0]
        .strip()
    )
    return f"[IP: {source_ip}] {message}"


def _wants_json():
    return request.accept_mimetypes.best == "application/json" or request.is_json


@error_pages.app_errorhandler(404)
def error_404(error):
    """Error 404 page handler"""
    incoming_url = request.path
    app.logger.error(log_message(f"404 Error: {error}, URL: {incoming_url}"))
    if _wants_json():
        return jsonify({"error": "Not found"}), 404
    return render_template("error_pages/404.html"), 404


@error_pages.app_errorhandler(413)
def error_413(error):
    """Upload too large"""
    app.logger.error(log_message(f"413 Error: {error}"))
    return jsonify({"ok": False, "alert": "The uploaded file is too large."}), 413


@error_pages.app_errorhandler(500)
def error_500(error):
    """Error 500 page handler"""
    app.logger.error(log_message(error))
    if _wants_json():
        return jsonify({"error": "Internal server error"}), 500
    return render_template("error_pages/500.html"), 500
