"""Tests for content scan gates."""

from io import BytesIO
from unittest import mock

import clamd
import pytest
from django.core.exceptions import ImproperlyConfigured

from server.apps.files.exceptions import ScanTimeoutError
from server.apps.files.infrastructure.scanning import (
    ClamAVScanGate,
    PassthroughScanGate,
    ScanGateError,
    ScanResult,
    TimeoutScanGate,
    get_scan_gate,
)


@pytest.fixture
def clamd_client():
    """Patch the clamd network client.

    Yields:
        Mock standing in for ClamdNetworkSocket instances.
    """
    with mock.patch.object(clamd, 'ClamdNetworkSocket') as socket_class:
        yield socket_class.return_value


@pytest.fixture
def fresh_scan_gate():
    """Clear the cached process-wide gate around a test.

    Yields:
        The ``get_scan_gate`` function.
    """
    get_scan_gate.cache_clear()
    yield get_scan_gate
    get_scan_gate.cache_clear()


def test_scan_result_accept():
    """Test accepting verdicts carry no reasons."""
    result = ScanResult.accept()

    assert result.accepted is True
    assert result.reasons == ()


def test_scan_result_reject():
    """Test rejecting verdicts keep their reasons."""
    result = ScanResult.reject(['Eicar-Signature'])

    assert result.accepted is False
    assert result.reasons == ('Eicar-Signature',)


def test_clamav_clean(clamd_client):
    """Test clamd OK verdict accepts the stream."""
    clamd_client.instream.return_value = {'stream': ('OK', None)}
    stream = BytesIO(b'clean')

    result = ClamAVScanGate('clamav', 3310, timeout=5).scan(stream)

    assert result.accepted is True
    clamd_client.instream.assert_called_once_with(stream)


def test_clamav_infected(clamd_client):
    """Test clamd FOUND verdict rejects with the signature."""
    clamd_client.instream.return_value = {
        'stream': ('FOUND', 'Win.Test.EICAR_HDB-1'),
    }

    result = ClamAVScanGate('clamav', 3310, timeout=5).scan(BytesIO(b'x'))

    assert result.accepted is False
    assert result.reasons == ('Win.Test.EICAR_HDB-1',)


def test_clamav_unreachable(clamd_client):
    """Test connection failures become ScanGateError."""
    clamd_client.instream.side_effect = clamd.ConnectionError('refused')

    with pytest.raises(ScanGateError):
        ClamAVScanGate('clamav', 3310, timeout=5).scan(BytesIO(b'x'))


def test_clamav_unexpected_verdict(clamd_client):
    """Test verdicts other than OK and FOUND become ScanGateError."""
    clamd_client.instream.return_value = {
        'stream': ('ERROR', 'INSTREAM size limit exceeded'),
    }

    with pytest.raises(ScanGateError):
        ClamAVScanGate('clamav', 3310, timeout=5).scan(BytesIO(b'x'))


def test_passthrough_accepts():
    """Test the passthrough gate accepts everything."""
    assert PassthroughScanGate().scan(BytesIO(b'x')).accepted is True


def test_timeout_gate_returns_verdict(rejecting_scan_gate):
    """Test verdicts arriving in time are passed through."""
    gate = TimeoutScanGate(rejecting_scan_gate, timeout=5)

    result = gate.scan(BytesIO(b'x'))

    assert result.accepted is False
    assert result.reasons == ('eicar-test',)
    gate.shutdown()


def test_timeout_gate_times_out(hanging_scan_gate):
    """Test a gate with no verdict in time raises ScanTimeoutError."""
    gate = TimeoutScanGate(hanging_scan_gate, timeout=0.05, max_workers=1)

    with pytest.raises(ScanTimeoutError) as exc_info:
        gate.scan(BytesIO(b'x'))

    assert exc_info.value.timeout == 0.05
    assert exc_info.value.reasons == ['scan-timeout']
    gate.shutdown()


def test_timeout_gate_propagates_errors(broken_scan_gate):
    """Test errors raised by the wrapped gate reach the caller."""
    gate = TimeoutScanGate(broken_scan_gate, timeout=5)

    with pytest.raises(ConnectionRefusedError):
        gate.scan(BytesIO(b'x'))
    gate.shutdown()


def test_get_scan_gate_passthrough(settings, fresh_scan_gate):
    """Test the configured backend is wrapped with the timeout."""
    settings.FILES_SCAN_BACKEND = 'passthrough'
    settings.FILES_SCAN_TIMEOUT = 2

    gate = fresh_scan_gate()

    assert isinstance(gate, TimeoutScanGate)
    assert gate is fresh_scan_gate()
    assert gate.scan(BytesIO(b'x')).accepted is True
    gate.shutdown()


def test_get_scan_gate_clamav(settings, fresh_scan_gate, clamd_client):
    """Test the ClamAV backend is built from settings."""
    settings.FILES_SCAN_BACKEND = 'clamav'
    settings.CLAMD_HOST = 'scanner'
    settings.CLAMD_PORT = 3311
    clamd_client.instream.return_value = {'stream': ('OK', None)}

    gate = fresh_scan_gate()

    assert gate.scan(BytesIO(b'x')).accepted is True
    clamd.ClamdNetworkSocket.assert_called_once_with(
        host='scanner',
        port=3311,
        timeout=30.0,
    )
    gate.shutdown()


def test_get_scan_gate_unknown_backend(settings, fresh_scan_gate):
    """Test an unknown backend name is a configuration error."""
    settings.FILES_SCAN_BACKEND = 'sandbox'

    with pytest.raises(ImproperlyConfigured):
        fresh_scan_gate()
