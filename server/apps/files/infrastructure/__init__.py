"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Object store backend (S3/MinIO)
- Catalog queries over the FileRecord table
- Content scan gate (ClamAV)
- Object key and metadata helpers

Keep infrastructure concerns separate from business logic.
"""
