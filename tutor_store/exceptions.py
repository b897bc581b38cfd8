"""
Exception classes shared by every layer of the Tutor Store.

The HTTP layer maps each class to a status code, the remote backend maps
status codes back to the same classes, so callers see one taxonomy
regardless of which backend is configured.
"""


class TutorStoreError(Exception):
    """Base exception for all Tutor Store errors."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(TutorStoreError):
    """A required field or file is missing or malformed."""


class InvalidFormat(TutorStoreError):
    """The uploaded file type is not supported."""


class ParseError(TutorStoreError):
    """Text extraction failed for one file."""


class EmbeddingError(TutorStoreError):
    """The embedding model is unavailable or failed. Safe to retry later."""

    retryable = True


class StorageError(TutorStoreError):
    """The backend rejected a write or could not be reached."""

    network = False


class RemoteUnavailable(StorageError):
    """The remote store could not be reached (connection error or timeout)."""

    network = True


class NotFound(TutorStoreError):
    """No record exists with the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Record with ID {record_id} not found")
