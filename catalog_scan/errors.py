from __future__ import annotations

from typing import Sequence


class CatalogScanError(Exception):
    """Base class for every error raised by the catalog scanner."""


# ----------------------------
# Ingestion
# ----------------------------

class IngestError(CatalogScanError):
    """An ingestion attempt failed; the catalog has been cleared."""


class SchemaError(IngestError):
    def __init__(self, missing: Sequence[str], found: Sequence[str] = ()) -> None:
        self.missing = list(missing)
        self.found = list(found)
        super().__init__(
            f"Missing required columns: {', '.join(self.missing)}. "
            f"Found headers: {', '.join(self.found)}"
        )


class ParseError(IngestError):
    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} row error(s) reported by the CSV tokenizer")


class EmptyResultError(IngestError):
    def __init__(self) -> None:
        super().__init__("The CSV file had no rows with valid barcodes.")


# ----------------------------
# Persistence
# ----------------------------

class PersistError(CatalogScanError):
    """Writing the catalog to the blob store failed."""


# ----------------------------
# Preconditions
# ----------------------------

class CatalogEmptyError(CatalogScanError):
    def __init__(self, message: str = "No product data loaded. Please upload a CSV file first.") -> None:
        super().__init__(message)


# ----------------------------
# Decoder
# ----------------------------

class DecoderSetupError(CatalogScanError):
    """The decoder could not be initialised (camera access or setup failure)."""


class DecoderRuntimeError(CatalogScanError):
    def __init__(self, kind: str, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or kind)
