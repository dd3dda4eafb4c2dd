"""
Error and warning kinds raised by the ingestion pipeline.

Fatal errors are confined to a single record by the batch engine; warnings
ride along on an otherwise successful record.
"""

from dataclasses import dataclass


class IngestionError(Exception):
    """Base class for per-record fatal errors."""

    error_kind = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IngestionError):
    """A required field is missing or malformed."""

    error_kind = "ValidationError"


class AuthorizationError(IngestionError):
    """The author is not under an active contract with the publisher."""

    error_kind = "AuthorizationError"


class DuplicateError(IngestionError):
    """An isbn/asin unique constraint was violated."""

    error_kind = "DuplicateError"


class StorageError(IngestionError):
    """One or more image roles could not be written to object storage."""

    error_kind = "StorageError"

    def __init__(self, message: str, failed_roles: list[str] | None = None):
        super().__init__(message)
        self.failed_roles = failed_roles or []


class BatchRejectedError(Exception):
    """The submission as a whole is malformed (size limit, blob keys)."""


# Warning kinds
TAXONOMY_UNRESOLVED = "TaxonomyUnresolved"
TAXONOMY_CAPPED = "TaxonomyCapped"
TAXONOMY_SPARSE = "TaxonomySparse"
IMAGE_MISSING = "ImageMissing"


@dataclass(frozen=True)
class IngestionWarning:
    """Non-fatal problem attached to a created book."""

    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"
