"""Resolve the verified identity of an inbound request."""

import logging
from typing import TYPE_CHECKING

from django.http import HttpRequest

from server.apps.files.exceptions import UnauthenticatedError

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)


def require_identity(request: HttpRequest) -> 'User':
    """Get the authenticated user from the request.

    Authentication itself is done by Django's authentication middleware.

    Args:
        request: Inbound HTTP request.

    Returns:
        Authenticated Django User object.

    Raises:
        UnauthenticatedError: If the request is anonymous.
    """
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        logger.info('Unauthenticated request to %s', request.path)
        raise UnauthenticatedError('Authentication required')
    return user  # type: ignore[return-value]
