"""Tests for download business logic."""

from unittest import mock

import pytest

from server.apps.files.exceptions import (
    FileRecordNotFoundError,
    StorageReadError,
)
from server.apps.files.logic.download_operations import (
    download_private,
    download_public,
)
from server.apps.files.logic.file_operations import upload_file
from server.apps.files.logic.share_operations import (
    disable_share,
    enable_share,
)
from server.apps.files.models import ContentCategory


@pytest.mark.django_db
def test_download_private(user, storage, uploaded_file):
    """Test the owner downloads the exact bytes as an attachment."""
    download = download_private(uploaded_file.id, user, storage=storage)

    assert download.record == uploaded_file
    assert download.as_attachment is True
    assert download.content_disposition == (
        'attachment; filename="notes.txt"'
    )
    assert b''.join(download.chunks) == b'0123456789'


@pytest.mark.django_db
def test_download_private_other_owner(other_user, storage, uploaded_file):
    """Test another user cannot download the file."""
    with pytest.raises(FileRecordNotFoundError):
        download_private(uploaded_file.id, other_user, storage=storage)


@pytest.mark.django_db
def test_download_private_missing_object(
    user,
    storage,
    uploaded_file,
    mock_s3,
    caplog,
):
    """Test a record whose object is gone reports storage failure."""
    mock_s3.Object('mydrive', uploaded_file.object_key).delete()

    with pytest.raises(StorageReadError):
        download_private(uploaded_file.id, user, storage=storage)

    assert 'points at a missing object' in caplog.text


@pytest.mark.django_db
def test_download_private_storage_unreachable(user, storage, uploaded_file):
    """Test an unreadable store reports storage failure."""
    with mock.patch.object(
        storage,
        'open_stream',
        side_effect=ConnectionError('minio unreachable'),
    ):
        with pytest.raises(StorageReadError):
            download_private(uploaded_file.id, user, storage=storage)


@pytest.mark.django_db
def test_download_public(user, storage, uploaded_file):
    """Test anyone with the key downloads a shared file."""
    public_key = enable_share(uploaded_file.id, user)

    download = download_public(public_key, storage=storage)

    assert download.record.id == uploaded_file.id
    assert download.as_attachment is True
    assert b''.join(download.chunks) == b'0123456789'


@pytest.mark.django_db
def test_download_public_not_shared(user, storage, uploaded_file):
    """Test a key stops working once sharing is disabled."""
    public_key = enable_share(uploaded_file.id, user)
    disable_share(uploaded_file.id, user)

    with pytest.raises(FileRecordNotFoundError):
        download_public(public_key, storage=storage)


@pytest.mark.django_db
def test_download_public_unknown_key(storage):
    """Test an unknown key is not found."""
    with pytest.raises(FileRecordNotFoundError):
        download_public('0' * 32, storage=storage)


@pytest.mark.django_db
@pytest.mark.parametrize(('category', 'disposition'), [
    (ContentCategory.FILE, 'attachment'),
    (ContentCategory.APPLICATION, 'attachment'),
    (ContentCategory.VIDEO, 'inline'),
    (ContentCategory.AUDIO, 'inline'),
])
def test_download_public_disposition(  # noqa: WPS211
    user,
    storage,
    scan_gate,
    make_upload,
    category,
    disposition,
):
    """Test media is served inline and everything else as attachment."""
    record = upload_file(
        user,
        make_upload(filename='media.bin', category=category),
        storage=storage,
        scan_gate=scan_gate,
    )
    public_key = enable_share(record.id, user)

    download = download_public(public_key, storage=storage)

    assert download.content_disposition == (
        '{0}; filename="media.bin"'.format(disposition)
    )
