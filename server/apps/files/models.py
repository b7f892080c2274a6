"""Database models for files app."""

from typing import Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_OBJECT_KEY_MAX_LENGTH: Final = 1024
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_CATEGORY_MAX_LENGTH: Final = 16
_PUBLIC_KEY_MAX_LENGTH: Final = 64


class ContentCategory(models.TextChoices):
    """Closed set of content categories.

    The category only selects the download disposition policy,
    it never changes how the bytes are stored.
    """

    FILE = 'FILE', 'File'
    VIDEO = 'VIDEO', 'Video'
    AUDIO = 'AUDIO', 'Audio'
    APPLICATION = 'APPLICATION', 'Application'


# Categories that browsers must save instead of rendering inline
ATTACHMENT_CATEGORIES: Final = frozenset((
    ContentCategory.FILE,
    ContentCategory.APPLICATION,
))


@final
class FileRecord(models.Model):
    """Catalog entry for one object stored in S3-compatible storage.

    A record exists only while its ``object_key`` is expected to resolve
    in the object store. Apart from the sharing fields (``is_public`` and
    ``public_key``) every field is written once, at upload time.
    """

    # Owner relationship (never reassigned)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    object_key = models.CharField(
        max_length=_OBJECT_KEY_MAX_LENGTH,
        unique=True,
        help_text='Key in storage: {user_id}/{uuid}/{filename}',
    )

    # Client-declared metadata, not re-verified against the bytes
    name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='Original filename declared by the client',
    )

    title = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        blank=True,
        default='',
    )

    description = models.TextField(
        blank=True,
        default='',
    )

    content_category = models.CharField(
        max_length=_CATEGORY_MAX_LENGTH,
        choices=ContentCategory.choices,
        default=ContentCategory.FILE,
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='MIME type declared by the client',
    )

    # Public sharing
    is_public = models.BooleanField(default=False)

    public_key = models.CharField(
        max_length=_PUBLIC_KEY_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
        help_text='Share token, stable once issued',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        db_table = 'files'
        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-created_at', '-id']

        indexes = [
            # Optimize owner listing queries
            models.Index(
                fields=['user', '-created_at'],
                name='files_user_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.object_key}'

    @property
    def display_name(self) -> str:
        """Title shown to users, falling back to the original filename."""
        return self.title or self.name

    @property
    def downloads_as_attachment(self) -> bool:
        """Whether public downloads force a client-side save.

        Files and applications are attachments, video and audio
        are served inline so browsers can play them.
        """
        return self.content_category in ATTACHMENT_CATEGORIES
