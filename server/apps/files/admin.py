"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.infrastructure.storage import get_object_store
from server.apps.files.logic.file_operations import delete_file
from server.apps.files.models import FileRecord


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(FileRecord)
class FileRecordAdmin(admin.ModelAdmin[FileRecord]):
    """Read-only admin interface for the file catalog.

    Records are only created by uploads. Deleting here goes through
    the same delete operation as the API, object first.
    """

    list_display = [
        'display_name',
        'user',
        'size_display',
        'mime_type',
        'content_category',
        'is_public',
        'created_at',
    ]

    list_filter = [
        'content_category',
        'is_public',
        'created_at',
    ]

    search_fields = [
        'name',
        'title',
        'object_key',
        'user__username',
    ]

    readonly_fields = [
        'user',
        'object_key',
        'name',
        'title',
        'description',
        'content_category',
        'size_bytes',
        'mime_type',
        'is_public',
        'public_key',
        'created_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('user', 'name', 'title', 'description'),
        }),
        ('Storage', {
            'fields': (
                'object_key',
                'size_bytes',
                'mime_type',
                'content_category',
            ),
        }),
        ('Sharing', {
            'fields': ('is_public', 'public_key'),
        }),
        ('Timestamps', {
            'fields': ('created_at',),
        }),
    )

    def size_display(self, obj: FileRecord) -> str:
        """Display file size in human-readable format.

        Args:
            obj: FileRecord instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Records are only created by uploads."""
        return False

    def delete_model(self, request: HttpRequest, obj: FileRecord) -> None:
        """Delete object and record through the delete operation.

        Args:
            request: HTTP request.
            obj: FileRecord to delete.
        """
        delete_file(obj.id, obj.user, storage=get_object_store())

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[FileRecord],
    ) -> None:
        """Delete each selected record through the delete operation.

        Args:
            request: HTTP request.
            queryset: Selected records.
        """
        for record in queryset.select_related('user'):
            self.delete_model(request, record)

    def get_queryset(self, request: HttpRequest) -> QuerySet[FileRecord]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')
