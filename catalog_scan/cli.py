"""Flask CLI commands: `flask catalog ...` and `flask scan ...`."""

from __future__ import annotations

import time
from pathlib import Path

import click
from flask import current_app
from flask.cli import AppGroup

from catalog_scan.decoder import CameraDecoder
from catalog_scan.scanner.forms import validate_csv_upload
from catalog_scan.session import ScanResult

catalog_cli = AppGroup("catalog", help="Load, inspect or clear the product catalog.")
scan_cli = AppGroup("scan", help="Scan barcodes with a camera attached to this machine.")


def _scanner():
    return current_app.extensions["catalog_scan"]


@catalog_cli.command("load")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def catalog_load(csv_path: Path) -> None:
    """Replace the catalog with the products in CSV_PATH."""
    validation = validate_csv_upload(csv_path.name, csv_path.read_bytes())
    if not validation.ok:
        raise click.ClickException(validation.error or "Invalid file")

    report = _scanner().load_csv(validation.text or "", validation.file_name)
    if not report.ok:
        raise click.ClickException(report.message)

    click.echo(report.message)
    if report.warning:
        click.echo(f"Warning: {report.warning}", err=True)


@catalog_cli.command("show")
@click.option("--limit", type=int, default=20, show_default=True, help="Rows to print")
def catalog_show(limit: int) -> None:
    """Print the loaded catalog."""
    catalog = _scanner().catalog
    if catalog.is_empty():
        click.echo("No product data loaded.")
        return

    click.echo(f"{len(catalog)} products loaded")
    for i, (barcode, record) in enumerate(catalog.records()):
        if i >= limit:
            click.echo(f"  ... {len(catalog) - limit} more")
            break
        click.echo(f"  {barcode:<16} {record.name:<30} {record.uom:<6} ${record.price:.2f}")


@catalog_cli.command("clear")
def catalog_clear() -> None:
    """Remove the catalog and its persisted copy."""
    _scanner().clear_catalog()
    click.echo("Product catalog cleared.")


@scan_cli.command("camera")
@click.option("--index", "camera_index", type=int, default=None, help="Camera index (default: CAMERA_INDEX)")
@click.option("--max-frames", type=int, default=None, help="Stop after this many frames")
@click.option("--interval", type=float, default=0.5, show_default=True, help="Seconds between frames")
def scan_camera(camera_index: int | None, max_frames: int | None, interval: float) -> None:
    """Scan from a local camera until Ctrl+C, printing each identified item."""
    scanner = _scanner()
    if camera_index is None:
        camera_index = current_app.config["CAMERA_INDEX"]

    decoder = CameraDecoder(camera_index=camera_index)
    report = scanner.start_scan(surface=camera_index, decoder=decoder)
    if not report.ok:
        raise click.ClickException(report.alert or "Could not start scanning")

    click.echo("Point camera at barcode... (Ctrl+C to stop)")
    frames = 0
    try:
        while decoder.running and (max_frames is None or frames < max_frames):
            outcome = scanner.poll_camera(decoder)
            frames += 1
            if outcome.result is ScanResult.fault:
                raise click.ClickException(outcome.alert or outcome.message)
            if outcome.result not in (ScanResult.nothing, ScanResult.ignored):
                click.echo(outcome.message)
            if interval:
                time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        scanner.stop_scan()

    click.echo(f"{len(scanner.results)} item(s) in list")
    for entry in scanner.results:
        click.echo(f"  {entry.barcode:<16} {entry.record.name:<30} {entry.record.uom:<6} ${entry.record.price:.2f}")
