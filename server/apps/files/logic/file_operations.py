"""Business logic for file upload, deletion and listing."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, BinaryIO, Final, final

from django.conf import settings

from server.apps.files.exceptions import (
    CatalogWriteError,
    FileRecordNotFoundError,
    InternalError,
    InvalidInputError,
    RejectedContentError,
    StorageWriteError,
)
from server.apps.files.infrastructure import catalog
from server.apps.files.infrastructure.metadata import (
    build_object_key,
    detect_mime_type,
    extract_filename,
)
from server.apps.files.models import ContentCategory, FileRecord

if TYPE_CHECKING:
    from server.apps.files.infrastructure.scanning import ScanGate
    from server.apps.files.infrastructure.storage import FileStorage

# User type for Django's dynamic user model
_User = Any

# Default upload limit: 100 MiB
_DEFAULT_MAX_UPLOAD_BYTES: Final = 100 * 1024 * 1024

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class UploadRequest:
    """Client-declared upload data.

    ``size_bytes`` and ``mime_type`` are recorded as declared and are
    not checked against the stream. The stream must be seekable.
    """

    filename: str
    stream: BinaryIO | None
    size_bytes: int
    mime_type: str = ''
    title: str = ''
    description: str = ''
    category: str = ContentCategory.FILE


def get_max_upload_bytes() -> int:
    """Get the largest accepted upload size.

    Returns:
        Limit in bytes from settings or default of 100 MiB.
    """
    return getattr(settings, 'FILES_MAX_UPLOAD_BYTES', _DEFAULT_MAX_UPLOAD_BYTES)


def upload_file(
    owner: _User | None,
    upload: UploadRequest,
    *,
    storage: 'FileStorage',
    scan_gate: 'ScanGate',
    max_upload_bytes: int | None = None,
) -> FileRecord:
    """Scan, store and catalog an upload.

    Transaction safety: the object is written to storage first, then
    the catalog record is created. If the catalog insert fails, the
    object is deleted from storage (rollback). Nothing is written when
    the scan gate rejects the content.

    Args:
        owner: Uploading user.
        upload: Declared upload data and its byte stream.
        storage: Object store to write to.
        scan_gate: Gate that must accept the content first.
        max_upload_bytes: Size limit, defaults to settings.

    Returns:
        Created FileRecord.

    Raises:
        InvalidInputError: If owner or stream is missing or limits break.
        RejectedContentError: If the scan gate rejects or times out.
        InternalError: If the scan gate fails.
        StorageWriteError: If the object store write fails.
        CatalogWriteError: If the catalog insert fails.
    """
    if owner is None or upload.stream is None:
        raise InvalidInputError('An owner and a file are required')

    filename = extract_filename(upload.filename)
    _validate_upload(upload, max_upload_bytes)

    _scan_upload(upload.stream, scan_gate, filename)

    object_key = build_object_key(owner.pk, filename)

    # Step 1: Upload to storage first
    try:
        saved_key = storage.put(object_key, upload.stream)
    except Exception as error:
        logger.exception('Failed to upload object to storage: %s', object_key)
        raise StorageWriteError('Could not store file content') from error

    # Step 2: Create catalog record
    try:
        record = catalog.insert(
            user=owner,
            object_key=saved_key,
            name=filename,
            title=upload.title.strip() or filename,
            description=upload.description,
            content_category=upload.category,
            size_bytes=upload.size_bytes,
            mime_type=detect_mime_type(upload.mime_type, filename),
        )
    except CatalogWriteError:
        # Rollback: Delete object from storage since the insert failed
        logger.exception(
            'Catalog insert failed, rolling back storage upload: %s',
            saved_key,
        )
        storage.rollback_upload(saved_key)
        raise

    logger.info(
        'File record created in catalog: %s (ID: %d)',
        saved_key,
        record.id,
    )
    return record


def _validate_upload(upload: UploadRequest, max_upload_bytes: int | None) -> None:
    limit = max_upload_bytes if max_upload_bytes is not None else (
        get_max_upload_bytes()
    )
    if upload.size_bytes < 0:
        raise InvalidInputError('File size cannot be negative')
    if upload.size_bytes > limit:
        raise InvalidInputError(
            f'File is larger than the {limit} byte upload limit',
        )
    if upload.category not in ContentCategory.values:
        raise InvalidInputError(f'Unknown content type: {upload.category}')
    _validate_length('title', upload.title.strip())
    _validate_length('mime_type', upload.mime_type.strip())


def _validate_length(field_name: str, declared: str) -> None:
    max_length = FileRecord._meta.get_field(field_name).max_length
    if max_length is not None and len(declared) > max_length:
        raise InvalidInputError(
            f'{field_name} longer than {max_length} characters',
        )


def _scan_upload(stream: BinaryIO, scan_gate: 'ScanGate', filename: str) -> None:
    """Run the scan gate, failing closed.

    Raises:
        RejectedContentError: If the gate rejects or times out.
        InternalError: If the gate fails.
    """
    stream.seek(0)
    try:
        result = scan_gate.scan(stream)
    except RejectedContentError:
        logger.warning('Upload rejected without verdict: %s', filename)
        raise
    except Exception as error:
        logger.exception('Scan gate failed, rejecting upload: %s', filename)
        raise InternalError('Content scan unavailable') from error

    if not result.accepted:
        logger.warning(
            'Upload rejected by scan gate: %s (%s)',
            filename,
            ', '.join(result.reasons),
        )
        raise RejectedContentError(result.reasons)

    stream.seek(0)


def delete_file(
    file_id: int,
    requester: _User,
    *,
    storage: 'FileStorage',
) -> None:
    """Delete a file from storage and catalog.

    The object is deleted first. A failed object delete is logged and
    does not stop the catalog record from being removed, so a missing
    object never blocks cleanup. Calling this twice for the same file
    raises FileRecordNotFoundError the second time.

    Args:
        file_id: ID of file to delete.
        requester: User asking for the delete; must own the file.
        storage: Object store holding the bytes.

    Raises:
        FileRecordNotFoundError: If the requester has no such file.
        CatalogWriteError: If the catalog delete fails.
    """
    record = catalog.find_by_id_and_owner(file_id, requester)
    logger.info(
        'Deleting file: ID=%d, key=%s',
        record.id,
        record.object_key,
    )

    # Step 1: Delete object (best effort)
    try:
        storage.delete(record.object_key)
    except Exception:
        logger.exception(
            'Failed to delete object from storage (orphaned): %s',
            record.object_key,
        )

    # Step 2: Delete catalog record
    try:
        deleted = catalog.delete(record)
    except CatalogWriteError:
        logger.exception('Failed to delete file record: ID=%d', record.id)
        raise

    if not deleted:
        # A concurrent delete removed the record first
        raise FileRecordNotFoundError
    logger.info('File record deleted from catalog: ID=%d', record.id)


def list_files(owner: _User) -> list[FileRecord]:
    """List a user's files, newest first.

    Args:
        owner: Owner of files.

    Returns:
        List of the owner's FileRecord objects.

    Raises:
        CatalogReadError: If the catalog cannot be queried.
    """
    logger.debug('Listing files for user: %s', owner.pk)
    return catalog.list_for_owner(owner)
