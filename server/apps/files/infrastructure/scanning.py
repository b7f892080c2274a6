"""Content scan gate run before any upload is stored.

The gate answers accept or reject for a byte stream. ``TimeoutScanGate``
bounds how long a verdict may take; a gate that hangs rejects the upload.
"""

import functools
import logging
from collections.abc import Sequence
from concurrent import futures
from dataclasses import dataclass, field
from typing import BinaryIO, Final, Protocol, final

import clamd
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from server.apps.files.exceptions import ScanTimeoutError

logger = logging.getLogger(__name__)

_DEFAULT_SCAN_TIMEOUT: Final = 30.0
_DEFAULT_SCAN_WORKERS: Final = 4


@final
@dataclass(frozen=True)
class ScanResult:
    """Verdict of a scan gate."""

    accepted: bool
    reasons: tuple[str, ...] = field(default=())

    @classmethod
    def accept(cls) -> 'ScanResult':
        """Build an accepting verdict."""
        return cls(accepted=True)

    @classmethod
    def reject(cls, reasons: Sequence[str]) -> 'ScanResult':
        """Build a rejecting verdict.

        Args:
            reasons: Findings that caused the rejection.

        Returns:
            Rejecting ScanResult.
        """
        return cls(accepted=False, reasons=tuple(reasons))


class ScanGate(Protocol):
    """Anything that can inspect an upload before it is stored."""

    def scan(self, stream: BinaryIO) -> ScanResult:
        """Inspect the stream from its current position to the end."""


class ScanGateError(Exception):
    """Raised when a gate cannot produce a verdict."""


@final
class ClamAVScanGate:
    """Scan gate backed by a ClamAV daemon over TCP (INSTREAM)."""

    def __init__(self, host: str, port: int, timeout: float | None) -> None:
        """Initialize the gate.

        Args:
            host: clamd host.
            port: clamd TCP port.
            timeout: Socket timeout in seconds.
        """
        self._client = clamd.ClamdNetworkSocket(
            host=host,
            port=port,
            timeout=timeout,
        )

    def scan(self, stream: BinaryIO) -> ScanResult:
        """Send the stream to clamd and translate its verdict.

        Args:
            stream: File-like object to scan.

        Returns:
            ScanResult with the virus signatures as reasons.

        Raises:
            ScanGateError: If clamd fails or answers something unexpected.
        """
        try:
            response = self._client.instream(stream)
        except (clamd.ClamdError, OSError) as error:
            raise ScanGateError(f'clamd scan failed: {error}') from error

        status, signature = response['stream']
        if status == 'OK':
            return ScanResult.accept()
        if status == 'FOUND':
            logger.warning('clamd found infected content: %s', signature)
            return ScanResult.reject([signature])
        raise ScanGateError(f'Unexpected clamd verdict: {status} {signature}')


@final
class PassthroughScanGate:
    """Accepts everything. Only for development without ClamAV."""

    def scan(self, stream: BinaryIO) -> ScanResult:
        """Accept the stream without reading it."""
        logger.warning('Content scanning is disabled, upload not scanned')
        return ScanResult.accept()


@final
class TimeoutScanGate:
    """Runs another gate with a bounded wait for its verdict.

    Scans run on a small thread pool owned by the gate. When the wait
    runs out, ``ScanTimeoutError`` is raised and the upload is rejected;
    the worker thread is left to finish on its own.
    """

    def __init__(
        self,
        gate: ScanGate,
        timeout: float,
        max_workers: int = _DEFAULT_SCAN_WORKERS,
    ) -> None:
        """Initialize the wrapper.

        Args:
            gate: Gate producing the verdict.
            timeout: Seconds to wait for the verdict.
            max_workers: Concurrent scans.
        """
        self._gate = gate
        self._timeout = timeout
        self._executor = futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='scan-gate',
        )

    def scan(self, stream: BinaryIO) -> ScanResult:
        """Scan the stream, rejecting it when the gate is too slow.

        Args:
            stream: File-like object to scan.

        Returns:
            Verdict of the wrapped gate.

        Raises:
            ScanTimeoutError: If no verdict arrives in time.
        """
        future = self._executor.submit(self._gate.scan, stream)
        try:
            return future.result(timeout=self._timeout)
        except futures.TimeoutError as error:
            future.cancel()
            logger.warning(
                'Scan gate gave no verdict within %.1f seconds',
                self._timeout,
            )
            raise ScanTimeoutError(self._timeout) from error

    def shutdown(self) -> None:
        """Stop accepting scans without waiting for running ones."""
        self._executor.shutdown(wait=False, cancel_futures=True)


def _build_backend() -> ScanGate:
    backend = getattr(settings, 'FILES_SCAN_BACKEND', 'clamav')
    if backend == 'clamav':
        return ClamAVScanGate(
            host=settings.CLAMD_HOST,
            port=settings.CLAMD_PORT,
            timeout=get_scan_timeout(),
        )
    if backend == 'passthrough':
        return PassthroughScanGate()
    raise ImproperlyConfigured(f'Unknown FILES_SCAN_BACKEND: {backend}')


def get_scan_timeout() -> float:
    """Get the scan verdict timeout in seconds.

    Returns:
        Timeout from settings or default of 30 seconds.
    """
    return float(getattr(settings, 'FILES_SCAN_TIMEOUT', _DEFAULT_SCAN_TIMEOUT))


@functools.cache
def get_scan_gate() -> ScanGate:
    """Get the process-wide scan gate, built once from settings.

    Returns:
        Configured gate wrapped with the verdict timeout.
    """
    backend = _build_backend()
    logger.info('Scan gate ready: %s', type(backend).__name__)
    return TimeoutScanGate(
        backend,
        timeout=get_scan_timeout(),
        max_workers=getattr(
            settings,
            'FILES_SCAN_WORKERS',
            _DEFAULT_SCAN_WORKERS,
        ),
    )
