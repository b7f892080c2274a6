"""Custom storage backend for S3-compatible storage."""

import logging
from collections.abc import Iterator
from typing import Any, Final, final, override

from botocore.exceptions import ClientError
from django.core.files.storage import storages
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.files.exceptions import ObjectNotFoundError

logger = logging.getLogger(__name__)

# Chunk size used when streaming objects out of storage
_STREAM_CHUNK_SIZE: Final = 64 * 1024

# S3 error codes meaning the key does not resolve
_MISSING_OBJECT_CODES: Final = frozenset(('NoSuchKey', '404', 'NotFound'))


@final
class ObjectChunks(Iterator[bytes]):
    """Chunks of an S3 response body, closing the body when done.

    ``StreamingHttpResponse`` calls ``close`` when the response ends,
    including when the client disconnects early, which returns the
    connection to the pool.
    """

    def __init__(self, body: Any, chunk_size: int) -> None:
        """Initialize the iterator.

        Args:
            body: botocore StreamingBody.
            chunk_size: Bytes per yielded chunk.
        """
        self._body = body
        self._chunks = body.iter_chunks(chunk_size)

    @override
    def __next__(self) -> bytes:
        try:
            return next(self._chunks)
        except StopIteration:
            self.close()
            raise

    def close(self) -> None:
        """Release the underlying connection."""
        self._body.close()


@final
class FileStorage(S3Storage):
    """Object store for user files on MinIO or any S3-compatible backend.

    Extends django-storages S3Storage with:
    - Compensating delete for failed catalog writes
    - Streaming reads that never buffer a whole object
    - Enhanced error logging
    """

    def put(self, object_key: str, content: Any) -> str:
        """Write content under the given key.

        Args:
            object_key: Key to store the bytes under.
            content: File-like object positioned anywhere; it is rewound.

        Returns:
            Key actually used by the backend.
        """
        return self.save(object_key, content)

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading object to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded object: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload object to storage: %s', name)
            raise
        else:
            return saved_name

    def open_stream(
        self,
        object_key: str,
        chunk_size: int = _STREAM_CHUNK_SIZE,
    ) -> Iterator[bytes]:
        """Open an object for streaming.

        The GET request is issued immediately so a missing key fails
        here and not halfway through a response. The body is then read
        lazily, one chunk at a time.

        Args:
            object_key: Key of the object to read.
            chunk_size: Bytes per yielded chunk.

        Returns:
            Closable iterator over the object's bytes.

        Raises:
            ObjectNotFoundError: If the key does not resolve.
        """
        name = self._normalize_name(clean_name(object_key))
        try:
            response = self.bucket.Object(name).get()
        except ClientError as error:
            if error.response['Error']['Code'] in _MISSING_OBJECT_CODES:
                raise ObjectNotFoundError(object_key) from error
            logger.exception('Failed to read object from storage: %s', name)
            raise

        return ObjectChunks(response['Body'], chunk_size)

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Deleting a key that does not exist succeeds.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting object from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted object: %s', name)
        except Exception:
            logger.exception('Failed to delete object from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded object after a failed catalog write.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, so the caller still reports the
        original failure.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting object: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back object upload: %s', name)
        except Exception:
            # The object stays in storage with no catalog record
            logger.exception(
                'Failed to rollback upload, orphaned object: %s',
                name,
            )


def get_object_store() -> FileStorage:
    """Get the process-wide object store.

    Django's storage handler builds it once from ``STORAGES['default']``.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return storages['default']  # type: ignore[return-value]
