from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CsvUploadResult:
	ok: bool
	file_name: str | None = None
	text: str | None = None
	error: str | None = None


def decode_csv_bytes(data: bytes) -> str | None:
	# utf-8-sig drops a leading BOM; cp1252 covers spreadsheet exports.
	for encoding in ("utf-8-sig", "cp1252"):
		try:
			return data.decode(encoding)
		except UnicodeDecodeError:
			continue
	return None


def validate_csv_upload(file_name: str | None, data: bytes | None) -> CsvUploadResult:
	name = (file_name or "").strip()
	if not name:
		return CsvUploadResult(ok=False, error="Choose a CSV file to upload.")
	if not name.lower().endswith(".csv"):
		return CsvUploadResult(ok=False, file_name=name, error="Please select a valid .csv file.")

	text = decode_csv_bytes(data or b"")
	if not text:
		return CsvUploadResult(ok=False, file_name=name, error="Could not read content from the file.")

	return CsvUploadResult(ok=True, file_name=name, text=text)
