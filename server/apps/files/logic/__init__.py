"""Business logic layer for files app.

This package contains the storage coordination operations:
- Upload, delete and listing
- Private and public downloads
- Public sharing

Every operation keeps the object store and the catalog consistent.
Collaborators (object store, scan gate) are passed in by the caller.

Reference: https://github.com/dry-python
for decoupling business logic from Django views.
"""
