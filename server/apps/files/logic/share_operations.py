"""Business logic for public sharing."""

import logging
import secrets
from typing import Any, Final

from server.apps.files.exceptions import InternalError, KeyCollisionError
from server.apps.files.infrastructure import catalog

# User type for Django's dynamic user model
_User = Any

# Public key length in bytes (generates 32 hex chars)
_PUBLIC_KEY_BYTES: Final = 16

# Attempts at finding an unused key before giving up
_MAX_KEY_ATTEMPTS: Final = 5

logger = logging.getLogger(__name__)


def generate_public_key() -> str:
    """Generate a new unguessable share token.

    Returns:
        Random hex string.
    """
    return secrets.token_hex(_PUBLIC_KEY_BYTES)


def enable_share(file_id: int, requester: _User) -> str:
    """Make a file public and return its share key.

    Idempotent: a file keeps the first key issued for it, and later
    calls return that same key. New keys are written only to records
    without one, so concurrent calls cannot issue two different keys.

    Args:
        file_id: ID of the file.
        requester: User asking; must own the file.

    Returns:
        Public key for the file.

    Raises:
        FileRecordNotFoundError: If the requester has no such file.
        InternalError: If no unused key was found in time.
    """
    record = catalog.find_by_id_and_owner(file_id, requester)

    if record.public_key:
        if not record.is_public:
            catalog.update_share(record, is_public=True)
        logger.info('Reusing public key for file ID=%d', record.id)
        return record.public_key

    for attempt in range(1, _MAX_KEY_ATTEMPTS + 1):
        public_key = generate_public_key()
        try:
            issued = catalog.update_share(
                record,
                is_public=True,
                public_key=public_key,
            )
        except KeyCollisionError:
            logger.warning(
                'Public key collision for file ID=%d (attempt %d/%d)',
                record.id,
                attempt,
                _MAX_KEY_ATTEMPTS,
            )
            continue

        if issued:
            logger.info('Public key issued for file ID=%d', record.id)
            return public_key

        # Another request issued a key first
        return _current_public_key(file_id, requester)

    logger.error(
        'Could not issue a public key for file ID=%d after %d attempts',
        record.id,
        _MAX_KEY_ATTEMPTS,
    )
    raise InternalError('Could not issue a public key')


def disable_share(file_id: int, requester: _User) -> None:
    """Stop sharing a file.

    The public key is kept so sharing again restores the same link.

    Args:
        file_id: ID of the file.
        requester: User asking; must own the file.

    Raises:
        FileRecordNotFoundError: If the requester has no such file.
    """
    record = catalog.find_by_id_and_owner(file_id, requester)
    if record.is_public:
        catalog.update_share(record, is_public=False)
        logger.info('Sharing disabled for file ID=%d', record.id)


def _current_public_key(file_id: int, requester: _User) -> str:
    record = catalog.find_by_id_and_owner(file_id, requester)
    if not record.public_key:
        raise InternalError('Public key missing after concurrent issue')
    logger.info('Public key already issued for file ID=%d', record.id)
    return record.public_key
