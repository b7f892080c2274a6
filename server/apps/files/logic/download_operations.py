"""Business logic for private and public downloads."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, final

from django.utils.http import content_disposition_header

from server.apps.files.exceptions import ObjectNotFoundError, StorageReadError
from server.apps.files.infrastructure import catalog
from server.apps.files.models import FileRecord

if TYPE_CHECKING:
    from server.apps.files.infrastructure.storage import FileStorage

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class Download:
    """A resolved file ready to be streamed to the client."""

    record: FileRecord
    chunks: Iterator[bytes]
    as_attachment: bool

    @property
    def content_disposition(self) -> str | None:
        """Value for the Content-Disposition header."""
        return content_disposition_header(
            as_attachment=self.as_attachment,
            filename=self.record.name,
        )


def download_private(
    file_id: int,
    requester: _User,
    *,
    storage: 'FileStorage',
) -> Download:
    """Open one of the requester's own files.

    Private downloads are always sent as attachments.

    Args:
        file_id: ID of the file.
        requester: User asking for the file; must own it.
        storage: Object store holding the bytes.

    Returns:
        Download streaming the object.

    Raises:
        FileRecordNotFoundError: If the requester has no such file.
        StorageReadError: If the object is missing or unreadable.
    """
    record = catalog.find_by_id_and_owner(file_id, requester)
    return Download(
        record=record,
        chunks=_open_object(record, storage),
        as_attachment=True,
    )


def download_public(public_key: str, *, storage: 'FileStorage') -> Download:
    """Open a shared file by its public key.

    Files and applications are sent as attachments; video and audio
    are sent inline so browsers can play them.

    Args:
        public_key: Share token.
        storage: Object store holding the bytes.

    Returns:
        Download streaming the object.

    Raises:
        FileRecordNotFoundError: If the key is unknown or not shared.
        StorageReadError: If the object is missing or unreadable.
    """
    record = catalog.find_by_public_key(public_key)
    return Download(
        record=record,
        chunks=_open_object(record, storage),
        as_attachment=record.downloads_as_attachment,
    )


def _open_object(record: FileRecord, storage: 'FileStorage') -> Iterator[bytes]:
    try:
        return storage.open_stream(record.object_key)
    except ObjectNotFoundError as error:
        # Catalog and object store disagree
        logger.error(
            'File record %d points at a missing object: %s',
            record.id,
            record.object_key,
        )
        raise StorageReadError('File content unavailable') from error
    except Exception as error:
        logger.exception('Failed to open object: %s', record.object_key)
        raise StorageReadError('File content unavailable') from error
