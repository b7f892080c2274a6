"""File hosting settings: upload limits and the content scan gate."""

from server.settings.components import config

# Largest accepted upload (100 MiB)
FILES_MAX_UPLOAD_BYTES = config(
    'FILES_MAX_UPLOAD_BYTES',
    cast=int,
    default=100 * 1024 * 1024,
)

# Scan gate backend: 'clamav' or 'passthrough' (development only)
FILES_SCAN_BACKEND = config('FILES_SCAN_BACKEND', default='clamav')

# Seconds to wait for a scan verdict before rejecting the upload
FILES_SCAN_TIMEOUT = config('FILES_SCAN_TIMEOUT', cast=float, default=30)

# Concurrent scans per process
FILES_SCAN_WORKERS = config('FILES_SCAN_WORKERS', cast=int, default=4)

# ClamAV daemon
CLAMD_HOST = config('CLAMD_HOST', default='127.0.0.1')
CLAMD_PORT = config('CLAMD_PORT', cast=int, default=3310)
