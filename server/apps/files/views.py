"""HTTP endpoints for the files app.

Views only translate between HTTP and the logic layer. Each coordinator
failure is mapped to a status code through its ``Outcome``.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any, Final

from django.conf import settings
from django.http import (
    HttpRequest,
    HttpResponse,
    JsonResponse,
    StreamingHttpResponse,
)
from django.urls import reverse
from django.views.decorators.http import require_GET, require_http_methods

from server.apps.files.exceptions import (
    FileServiceError,
    InvalidInputError,
    Outcome,
    RejectedContentError,
)
from server.apps.files.identity import require_identity
from server.apps.files.infrastructure.scanning import get_scan_gate
from server.apps.files.infrastructure.storage import get_object_store
from server.apps.files.logic.download_operations import (
    Download,
    download_private,
    download_public,
)
from server.apps.files.logic.file_operations import (
    UploadRequest,
    delete_file,
    list_files,
    upload_file,
)
from server.apps.files.logic.share_operations import disable_share, enable_share
from server.apps.files.models import ContentCategory, FileRecord

logger = logging.getLogger(__name__)

_OUTCOME_STATUS: Final = {
    Outcome.INVALID_INPUT: 400,
    Outcome.UNAUTHENTICATED: 401,
    Outcome.NOT_FOUND: 404,
    Outcome.REJECTED_CONTENT: 422,
    Outcome.STORAGE_UNAVAILABLE: 503,
    Outcome.INTERNAL_ERROR: 500,
}

_GENERIC_MESSAGES: Final = {
    Outcome.STORAGE_UNAVAILABLE: 'Storage unavailable',
    Outcome.INTERNAL_ERROR: 'Server error',
}

_View = Callable[..., HttpResponse]


def _error_response(error: FileServiceError) -> JsonResponse:
    status = _OUTCOME_STATUS.get(error.outcome, 500)
    if error.public_message:
        body: dict[str, Any] = {'message': str(error)}
    else:
        body = {'message': _GENERIC_MESSAGES.get(error.outcome, 'Server error')}
        if settings.DEBUG:
            body['detail'] = repr(error.__cause__ or error)
    if isinstance(error, RejectedContentError):
        body['reasons'] = error.reasons
    return JsonResponse(body, status=status)


def _handles_file_errors(view: _View) -> _View:
    """Turn coordinator exceptions into JSON error responses."""

    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except FileServiceError as error:
            logger.warning(
                '%s %s failed: %s (%s)',
                request.method,
                request.path,
                type(error).__name__,
                error.outcome.value,
            )
            return _error_response(error)

    return wrapper


def _record_payload(record: FileRecord) -> dict[str, Any]:
    return {
        'id': record.id,
        'name': record.display_name,
        'size': record.size_bytes,
        'mimetype': record.mime_type,
        'uploaded_at': record.created_at.isoformat(),
        'content_type': record.content_category,
        'is_public': record.is_public,
        'public_key': record.public_key,
    }


def _stream_response(download: Download) -> StreamingHttpResponse:
    response = StreamingHttpResponse(
        download.chunks,
        content_type=download.record.mime_type,
    )
    disposition = download.content_disposition
    if disposition:
        response['Content-Disposition'] = disposition
    return response


@require_http_methods(['POST'])
@_handles_file_errors
def upload(request: HttpRequest) -> HttpResponse:
    """Upload the multipart ``file`` field with its metadata."""
    owner = require_identity(request)
    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise InvalidInputError('No file was sent')

    record = upload_file(
        owner,
        UploadRequest(
            filename=uploaded.name or '',
            stream=uploaded,
            size_bytes=uploaded.size or 0,
            mime_type=uploaded.content_type or '',
            title=request.POST.get('title', ''),
            description=request.POST.get('description', ''),
            category=request.POST.get('content_type') or ContentCategory.FILE,
        ),
        storage=get_object_store(),
        scan_gate=get_scan_gate(),
    )
    return JsonResponse(_record_payload(record), status=201)


@require_GET
@_handles_file_errors
def file_list(request: HttpRequest) -> HttpResponse:
    """List the requester's files."""
    owner = require_identity(request)
    payload = [_record_payload(record) for record in list_files(owner)]
    return JsonResponse(payload, safe=False)


@require_GET
@_handles_file_errors
def download(request: HttpRequest, file_id: int) -> HttpResponse:
    """Stream one of the requester's files."""
    owner = require_identity(request)
    return _stream_response(
        download_private(file_id, owner, storage=get_object_store()),
    )


@require_http_methods(['DELETE'])
@_handles_file_errors
def delete(request: HttpRequest, file_id: int) -> HttpResponse:
    """Delete one of the requester's files."""
    owner = require_identity(request)
    delete_file(file_id, owner, storage=get_object_store())
    return JsonResponse({'message': 'File deleted'})


@require_http_methods(['POST', 'DELETE'])
@_handles_file_errors
def share(request: HttpRequest, file_id: int) -> HttpResponse:
    """Enable (POST) or disable (DELETE) public sharing of a file."""
    owner = require_identity(request)
    if request.method == 'DELETE':
        disable_share(file_id, owner)
        return JsonResponse({'message': 'Sharing disabled'})

    public_key = enable_share(file_id, owner)
    return JsonResponse({
        'message': 'Sharing enabled',
        'publicKey': public_key,
        'publicUrl': reverse('files:public-download', args=[public_key]),
    })


@require_GET
@_handles_file_errors
def public_download(request: HttpRequest, public_key: str) -> HttpResponse:
    """Stream a shared file to anyone holding its key."""
    return _stream_response(
        download_public(public_key, storage=get_object_store()),
    )
