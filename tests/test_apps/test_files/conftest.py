"""Shared fixtures for files app tests."""

import threading
from io import BytesIO
from typing import BinaryIO, Final

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.files.infrastructure.scanning import ScanResult
from server.apps.files.infrastructure.storage import FileStorage
from server.apps.files.logic.file_operations import UploadRequest, upload_file
from server.apps.files.models import ContentCategory

User = get_user_model()

TEST_BUCKET: Final = 'mydrive'


class AcceptingScanGate:
    """Scan gate accepting everything, recording what it saw."""

    def __init__(self) -> None:
        self.scanned: list[bytes] = []

    def scan(self, stream: BinaryIO) -> ScanResult:
        self.scanned.append(stream.read())
        return ScanResult.accept()


class RejectingScanGate:
    """Scan gate rejecting everything with fixed reasons."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = reasons

    def scan(self, stream: BinaryIO) -> ScanResult:
        return ScanResult.reject(self.reasons)


class HangingScanGate:
    """Scan gate that blocks until released."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def scan(self, stream: BinaryIO) -> ScanResult:
        self.release.wait(timeout=5)
        return ScanResult.accept()


class BrokenScanGate:
    """Scan gate that cannot reach its engine."""

    def scan(self, stream: BinaryIO) -> ScanResult:
        raise ConnectionRefusedError('clamd is down')


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='u1',
        password='testpass123',
        email='u1@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='u2',
        password='testpass123',
        email='u2@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with the files bucket.

    Yields:
        boto3 S3 resource with the bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=TEST_BUCKET)

        yield conn


@pytest.fixture
def storage(mock_s3):
    """Object store pointed at the mocked bucket.

    Returns:
        FileStorage instance.
    """
    return FileStorage(
        bucket_name=TEST_BUCKET,
        access_key='testing',
        secret_key='testing',
        region_name='us-east-1',
        file_overwrite=False,
        default_acl=None,
    )


@pytest.fixture
def bucket_keys(mock_s3):
    """Callable listing every key currently in the bucket.

    Returns:
        Function returning a sorted list of keys.
    """
    def list_keys() -> list[str]:  # noqa: WPS430
        bucket = mock_s3.Bucket(TEST_BUCKET)
        return sorted(obj.key for obj in bucket.objects.all())

    return list_keys


@pytest.fixture
def scan_gate():
    """Accepting scan gate.

    Returns:
        AcceptingScanGate instance.
    """
    return AcceptingScanGate()


@pytest.fixture
def rejecting_scan_gate():
    """Scan gate rejecting with the EICAR test reason.

    Returns:
        RejectingScanGate instance.
    """
    return RejectingScanGate(['eicar-test'])


@pytest.fixture
def hanging_scan_gate():
    """Scan gate that never answers during the test.

    Yields:
        HangingScanGate instance, released on teardown.
    """
    gate = HangingScanGate()
    yield gate
    gate.release.set()


@pytest.fixture
def broken_scan_gate():
    """Scan gate raising on every scan.

    Returns:
        BrokenScanGate instance.
    """
    return BrokenScanGate()


@pytest.fixture
def make_upload():
    """Factory for upload requests with in-memory content.

    Returns:
        Function building an UploadRequest.
    """
    def factory(  # noqa: WPS430
        content: bytes = b'0123456789',
        filename: str = 'notes.txt',
        mime_type: str = 'text/plain',
        category: str = ContentCategory.FILE,
        **kwargs: object,
    ) -> UploadRequest:
        return UploadRequest(
            filename=filename,
            stream=BytesIO(content),
            size_bytes=len(content),
            mime_type=mime_type,
            category=category,
            **kwargs,  # type: ignore[arg-type]
        )

    return factory


@pytest.fixture
def uploaded_file(user, storage, scan_gate, make_upload):
    """Upload a 10-byte FILE as the test user.

    Returns:
        Created FileRecord.
    """
    return upload_file(
        user,
        make_upload(),
        storage=storage,
        scan_gate=scan_gate,
    )
