"""Catalog queries over the FileRecord table.

Every lookup that acts on behalf of a user is scoped by ``(id, owner)``.
ORM errors are re-raised as files app exceptions so callers never see
database driver types.
"""

import logging
from typing import Any

from django.db import DatabaseError, IntegrityError, transaction

from server.apps.files.exceptions import (
    CatalogReadError,
    CatalogWriteError,
    FileRecordNotFoundError,
    KeyCollisionError,
)
from server.apps.files.models import FileRecord

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def find_by_id_and_owner(file_id: int, owner: _User) -> FileRecord:
    """Get a record owned by the given user.

    Args:
        file_id: Record ID.
        owner: User the record must belong to.

    Returns:
        Matching FileRecord.

    Raises:
        FileRecordNotFoundError: If no record matches, including when
            it exists for another owner.
        CatalogReadError: If the query fails.
    """
    try:
        return FileRecord.objects.select_related('user').get(
            id=file_id,
            user=owner,
        )
    except FileRecord.DoesNotExist as error:
        logger.info('File not found: ID=%s, owner=%s', file_id, owner.pk)
        raise FileRecordNotFoundError from error
    except DatabaseError as error:
        logger.exception('Catalog lookup failed: ID=%s', file_id)
        raise CatalogReadError('Catalog lookup failed') from error


def find_by_public_key(public_key: str) -> FileRecord:
    """Get a shared record by its public key.

    Args:
        public_key: Share token from the public link.

    Returns:
        Matching FileRecord with ``is_public`` set.

    Raises:
        FileRecordNotFoundError: If the key is unknown or sharing is off.
        CatalogReadError: If the query fails.
    """
    if not public_key:
        raise FileRecordNotFoundError

    try:
        return FileRecord.objects.get(public_key=public_key, is_public=True)
    except FileRecord.DoesNotExist as error:
        logger.info('No public file for key: %s', public_key[:8])
        raise FileRecordNotFoundError from error
    except DatabaseError as error:
        logger.exception('Catalog lookup failed for public key')
        raise CatalogReadError('Catalog lookup failed') from error


def list_for_owner(owner: _User) -> list[FileRecord]:
    """List a user's records, newest first.

    The query runs here so database errors surface as catalog errors.

    Args:
        owner: Owner of the records.

    Returns:
        List of the owner's FileRecord objects.

    Raises:
        CatalogReadError: If the query fails.
    """
    try:
        return list(
            FileRecord.objects.filter(user=owner).order_by(
                '-created_at',
                '-id',
            ),
        )
    except DatabaseError as error:
        logger.exception('Catalog listing failed: owner=%s', owner.pk)
        raise CatalogReadError('Catalog listing failed') from error


def insert(**fields: Any) -> FileRecord:
    """Create a record in its own savepoint.

    Args:
        fields: FileRecord field values.

    Returns:
        Created FileRecord.

    Raises:
        CatalogWriteError: If the insert fails for any reason.
    """
    try:
        with transaction.atomic():
            return FileRecord.objects.create(**fields)
    except DatabaseError as error:
        raise CatalogWriteError('Catalog insert failed') from error


def update_share(
    record: FileRecord,
    *,
    is_public: bool,
    public_key: str | None = None,
) -> bool:
    """Update the sharing state of a record.

    When ``public_key`` is given it is only written if the record has
    no key yet, so an issued key is never replaced.

    Args:
        record: Record to update.
        is_public: New visibility.
        public_key: Key to issue, if any.

    Returns:
        True if a row was updated, False otherwise.

    Raises:
        KeyCollisionError: If another record already holds the key.
        CatalogWriteError: If the update fails for another reason.
    """
    queryset = FileRecord.objects.filter(id=record.id, user_id=record.user_id)
    changes: dict[str, Any] = {'is_public': is_public}
    if public_key is not None:
        queryset = queryset.filter(public_key__isnull=True)
        changes['public_key'] = public_key

    try:
        with transaction.atomic():
            updated = queryset.update(**changes)
    except IntegrityError as error:
        if public_key is None:
            raise CatalogWriteError('Catalog update failed') from error
        raise KeyCollisionError('Public key already in use') from error
    except DatabaseError as error:
        raise CatalogWriteError('Catalog update failed') from error

    return updated > 0


def delete(record: FileRecord) -> bool:
    """Delete a record.

    Args:
        record: Record to delete.

    Returns:
        True if the row was deleted, False if it was already gone.

    Raises:
        CatalogWriteError: If the delete fails.
    """
    try:
        with transaction.atomic():
            deleted, _ = FileRecord.objects.filter(
                id=record.id,
                user_id=record.user_id,
            ).delete()
    except DatabaseError as error:
        raise CatalogWriteError('Catalog delete failed') from error

    return deleted > 0
