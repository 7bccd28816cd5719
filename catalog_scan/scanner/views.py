from __future__ import annotations

from flask import Blueprint, current_app, jsonify, render_template, request

from catalog_scan.scanner.forms import validate_csv_upload
from catalog_scan.service import ScannerService

# blueprint router configuration
scanner_views = Blueprint("scanner", __name__)


def _scanner() -> ScannerService:
    return current_app.extensions["catalog_scan"]


def _log_message(message: str) -> str:
    source_ip = (
        request.headers.get("X-Forwarded-For", request.remote_addr or "")
        .split(",")[0]
        .strip()
    )
    return f"[IP: {source_ip}] {message}"


def _with_state(payload: dict) -> tuple:
    payload["state"] = _scanner().snapshot()
    return jsonify(payload), 200


@scanner_views.route("/", methods=["GET"])
def index():
    """Route to display the home page of the application"""

    return render_template("index.html", state=_scanner().snapshot())


@scanner_views.route("/state", methods=["GET"])
def state():
    return jsonify(_scanner().snapshot()), 200


@scanner_views.route("/catalog/upload", methods=["POST"])
def catalog_upload():
    upload = request.files.get("csv_file")
    if upload is None:
        validation = validate_csv_upload(None, None)
    else:
        validation = validate_csv_upload(upload.filename, upload.read())

    if not validation.ok:
        current_app.logger.warning(_log_message(f"Rejected catalog upload: {validation.error}"))
        return _with_state({"ok": False, "alert": validation.error, "report": None})

    current_app.logger.info(_log_message(f"Catalog upload: {validation.file_name}"))
    report = _scanner().load_csv(validation.text or "", validation.file_name)

    alert = report.message
    if report.warning and report.ok:
        alert = f"{report.message}\n{report.warning}"
    return _with_state({"ok": report.ok, "alert": alert, "report": report.to_dict()})


@scanner_views.route("/catalog/clear", methods=["POST"])
def catalog_clear():
    current_app.logger.info(_log_message("Clearing product catalog"))
    _scanner().clear_catalog()
    return _with_state({"ok": True})


@scanner_views.route("/scan/start", methods=["POST"])
def scan_start():
    body = request.get_json(silent=True) or {}
    report = _scanner().start_scan(surface=body.get("surface"))
    if not report.ok:
        current_app.logger.warning(_log_message(f"Scan start rejected: {report.alert}"))
    return _with_state(report.to_dict())


@scanner_views.route("/scan/stop", methods=["POST"])
def scan_stop():
    _scanner().stop_scan()
    return _with_state({"ok": True})


@scanner_views.route("/scan/event", methods=["POST"])
def scan_event():
    body = request.get_json(silent=True) or {}
    outcome = _scanner().relay_event(body.get("scan_id"), body)
    return _with_state({"ok": outcome["result"] != "ignored", "outcome": outcome})


@scanner_views.route("/manual", methods=["POST"])
def manual_add():
    raw = request.form.get("barcode")
    if raw is None:
        raw = (request.get_json(silent=True) or {}).get("barcode")
    outcome = _scanner().manual_add(raw)
    return _with_state({"ok": outcome.result.value == "added", "outcome": outcome.to_dict()})


@scanner_views.route("/list/clear", methods=["POST"])
def list_clear():
    _scanner().clear_list()
    return _with_state({"ok": True})
