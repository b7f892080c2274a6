"""Metadata helpers for files: names, MIME types and object keys."""

import mimetypes
import uuid
from pathlib import PurePosixPath
from typing import Final

from django.core.exceptions import SuspiciousFileOperation
from django.utils.text import get_valid_filename

from server.apps.files.exceptions import InvalidInputError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_MAX_FILENAME_LENGTH: Final = 255
_MAX_KEY_FILENAME_LENGTH: Final = 200


def detect_mime_type(declared: str | None, filename: str) -> str:
    """Pick the MIME type to record for an upload.

    The client-declared type wins. It is not checked against the
    bytes. Without one, the type is guessed from the filename extension.

    Args:
        declared: MIME type sent by the client, may be empty.
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if declared and declared.strip():
        return declared.strip()
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def extract_filename(declared_name: str | None) -> str:
    """Reduce a client-declared name to a bare filename.

    Drops any directory components, including Windows-style ones.

    Args:
        declared_name: Name sent by the client (e.g., 'C:\\docs\\a.pdf').

    Returns:
        Filename (e.g., 'a.pdf').

    Raises:
        InvalidInputError: If nothing usable is left or it is too long.
    """
    normalized = (declared_name or '').replace('\\', '/')
    filename = PurePosixPath(normalized).name.strip()
    if not filename or filename in {'.', '..'}:
        raise InvalidInputError('A filename is required')
    if len(filename) > _MAX_FILENAME_LENGTH:
        raise InvalidInputError(
            f'Filename longer than {_MAX_FILENAME_LENGTH} characters',
        )
    return filename


def build_object_key(owner_id: int, filename: str) -> str:
    """Generate a fresh object key for an upload.

    Keys look like ``{owner_id}/{uuid4 hex}/{safe filename}``. The random
    component keeps keys unique across concurrent uploads of the same
    name by the same owner.

    Args:
        owner_id: Owner's user ID.
        filename: Bare filename, see ``extract_filename``.

    Returns:
        New object key.
    """
    return '{owner_id}/{token}/{name}'.format(
        owner_id=owner_id,
        token=uuid.uuid4().hex,
        name=_key_safe_filename(filename),
    )


def _key_safe_filename(filename: str) -> str:
    try:
        safe_name = get_valid_filename(filename)
    except SuspiciousFileOperation:
        safe_name = 'file'

    if len(safe_name) <= _MAX_KEY_FILENAME_LENGTH:
        return safe_name

    # Keep the extension, cut the stem
    path = PurePosixPath(safe_name)
    stem_length = max(1, _MAX_KEY_FILENAME_LENGTH - len(path.suffix))
    return path.stem[:stem_length] + path.suffix[:_MAX_KEY_FILENAME_LENGTH - 1]
