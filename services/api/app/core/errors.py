from __future__ import annotations


class ReadshelfError(Exception):
    """Base class for errors raised by the catalog and library layers."""


class ValidationError(ReadshelfError):
    """A required field is missing or unusable; the operation is rejected."""


class ConflictError(ReadshelfError):
    """A natural-key or composite-key collision that could not be absorbed."""


class NotFoundError(ReadshelfError):
    pass


class StoreError(ReadshelfError):
    """The database failed. The message is safe to show; the cause is chained."""


class MalformedRecordError(ReadshelfError):
    """A single ingestion record is unusable. Non-fatal: the record is skipped."""

    def __init__(self, message: str, *, record: int | None = None) -> None:
        super().__init__(message)
        self.record = record


class FatalIngestionError(ReadshelfError):
    """The ingestion run cannot continue.

    ``inserted_count`` is the number of rows committed before the failure.
    """

    def __init__(self, message: str, *, inserted_count: int = 0) -> None:
        super().__init__(message)
        self.inserted_count = inserted_count
