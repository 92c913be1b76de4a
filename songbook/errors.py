"""
TSA Songbook Editor - Error Types

Every failure an operator can trigger maps onto one of these.  Store
(transport) failures are not wrapped: they surface as ``sqlite3.Error``
and are turned into a retry-suggesting response by the application.
"""


class SongbookError(Exception):
    """Base class for all songbook errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ImportParseError(SongbookError):
    """The import text is not well-formed JSON."""


class ImportValidationError(SongbookError):
    """The import payload has the wrong shape or is missing required fields."""


class SongValidationError(SongbookError):
    """A submitted song form is incomplete or malformed."""


class ConfirmationRequiredError(SongbookError):
    """A destructive action was attempted without the operator's confirmation."""


class SongNotFoundError(SongbookError):
    status_code = 404


class SongConflictError(SongbookError):
    """A song already exists at the destination hymn number."""

    status_code = 409


class SongLockedError(SongbookError):
    """The song is verified and cannot be edited or deleted."""

    status_code = 423


class BulkImportError(SongbookError):
    """The bulk replace batch failed; the store is unchanged."""

    status_code = 500
