"""Exceptions for files app.

Every coordinator failure is one of the ``FileServiceError`` subclasses
below. Each carries an ``Outcome`` so the HTTP layer can pick a status
code without inspecting the exception type.
"""

import enum
from collections.abc import Sequence


class Outcome(enum.Enum):
    """Boundary outcome of a storage coordination operation."""

    CREATED = 'created'
    OK = 'ok'
    INVALID_INPUT = 'invalid_input'
    UNAUTHENTICATED = 'unauthenticated'
    NOT_FOUND = 'not_found'
    REJECTED_CONTENT = 'rejected_content'
    STORAGE_UNAVAILABLE = 'storage_unavailable'
    INTERNAL_ERROR = 'internal_error'


class FileServiceError(Exception):
    """Base class for storage coordination failures."""

    outcome = Outcome.INTERNAL_ERROR

    # Whether the message is safe to show to end users
    public_message = True


class InvalidInputError(FileServiceError):
    """Raised when the request is missing data or breaks a limit."""

    outcome = Outcome.INVALID_INPUT


class UnauthenticatedError(FileServiceError):
    """Raised when the request carries no verified identity."""

    outcome = Outcome.UNAUTHENTICATED


class FileRecordNotFoundError(FileServiceError):
    """Raised when no record matches the lookup.

    Also used when the record exists but belongs to another owner,
    so callers cannot discover other users' files.
    """

    outcome = Outcome.NOT_FOUND

    def __init__(self, message: str = 'File not found') -> None:
        """Initialize FileRecordNotFoundError.

        Args:
            message: Human readable message.
        """
        super().__init__(message)


class RejectedContentError(FileServiceError):
    """Raised when the scan gate refuses an upload."""

    outcome = Outcome.REJECTED_CONTENT

    def __init__(self, reasons: Sequence[str]) -> None:
        """Initialize RejectedContentError.

        Args:
            reasons: Findings reported by the scan gate.
        """
        self.reasons = list(reasons)
        super().__init__(
            'Content rejected: {0}'.format(', '.join(self.reasons)),
        )


class ScanTimeoutError(RejectedContentError):
    """Raised when the scan gate gives no verdict in time."""

    def __init__(self, timeout: float) -> None:
        """Initialize ScanTimeoutError.

        Args:
            timeout: Seconds waited for the verdict.
        """
        self.timeout = timeout
        super().__init__(['scan-timeout'])


class StorageWriteError(FileServiceError):
    """Raised when the object store refuses a write."""

    outcome = Outcome.STORAGE_UNAVAILABLE
    public_message = False


class StorageReadError(FileServiceError):
    """Raised when a cataloged object cannot be read from the store."""

    outcome = Outcome.STORAGE_UNAVAILABLE
    public_message = False


class CatalogWriteError(FileServiceError):
    """Raised when the catalog refuses an insert, update or delete."""

    public_message = False


class CatalogReadError(FileServiceError):
    """Raised when the catalog cannot be queried."""

    public_message = False


class KeyCollisionError(FileServiceError):
    """Raised when a generated public key is already taken.

    Retried by the sharing operations, never returned to callers.
    """

    public_message = False


class InternalError(FileServiceError):
    """Raised for anything else, including exhausted retries."""

    public_message = False


class ObjectNotFoundError(Exception):
    """Raised by the object store when a key does not resolve."""

    def __init__(self, object_key: str) -> None:
        """Initialize ObjectNotFoundError.

        Args:
            object_key: Key that was looked up.
        """
        self.object_key = object_key
        super().__init__(f'Object not found in storage: {object_key}')
