"""Tests for request identity resolution."""

import pytest
from django.contrib.auth.models import AnonymousUser

from server.apps.files.exceptions import Outcome, UnauthenticatedError
from server.apps.files.identity import require_identity


def test_require_identity(rf, user):
    """Test the authenticated user is returned."""
    request = rf.get('/api/files/')
    request.user = user

    assert require_identity(request) == user


def test_require_identity_anonymous(rf):
    """Test anonymous requests are refused."""
    request = rf.get('/api/files/')
    request.user = AnonymousUser()

    with pytest.raises(UnauthenticatedError) as exc_info:
        require_identity(request)

    assert exc_info.value.outcome is Outcome.UNAUTHENTICATED


def test_require_identity_without_middleware(rf):
    """Test requests that never passed authentication are refused."""
    with pytest.raises(UnauthenticatedError):
        require_identity(rf.get('/api/files/'))
