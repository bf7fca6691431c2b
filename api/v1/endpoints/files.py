"""
File Endpoints

Per-user file storage: list, read, create/overwrite and delete by name.

@.architecture
Incoming: api/v1/router.py, Clients (HTTP GET/PUT/DELETE) --- {X-Session token, raw request bodies to /v1/files, /v1/files/{filename}}
Processing: list_files(), get_file(), put_file(), delete_file(), _upload_length() --- {5 jobs: authentication, size_validation, storage_management, error_mapping, recording}
Outgoing: data/storage/user_files.py, Clients (HTTP) --- {UserFileStorage calls in the threadpool, JSON name lists, raw file bytes, StoredFileResponse}
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from starlette.concurrency import run_in_threadpool

from api.dependencies import (
    get_current_user_id,
    get_file_storage,
    get_settings,
    read_limited_body,
    setup_request_context,
)
from api.v1.schemas.files import StoredFileResponse
from config.settings import Settings
from data.database.errors import NotFoundError
from data.storage.user_files import UserFileStorage
from monitoring import get_logger, counter, histogram

logger = get_logger(__name__)
router = APIRouter(tags=["files"], dependencies=[Depends(setup_request_context)])

# Metrics
file_operations = counter('filevault_file_operations_total', 'Total file operations', ['operation', 'status'])
upload_bytes = histogram(
    'filevault_upload_bytes',
    'Size of stored uploads in bytes',
    buckets=[1024, 16 * 1024, 64 * 1024, 256 * 1024, 512 * 1024, 1024 * 1024]
)


def _not_found(operation: str, error: NotFoundError) -> HTTPException:
    file_operations.inc(operation=operation, status='not_found')
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


# =============================================================================
# Listing
# =============================================================================

@router.get(
    "/files",
    response_model=List[str],
    summary="List files",
    description="Names of all files stored by the caller"
)
async def list_files(
    user_id: str = Depends(get_current_user_id),
    storage: UserFileStorage = Depends(get_file_storage)
) -> List[str]:
    """List the caller's file names (empty list if none)."""
    names = await run_in_threadpool(storage.list_files, user_id)
    file_operations.inc(operation='list', status='success')
    return names


# =============================================================================
# Read
# =============================================================================

@router.get(
    "/files/{filename:path}",
    summary="Get file",
    description="Raw file content with its stored Content-Type"
)
async def get_file(
    filename: str,
    user_id: str = Depends(get_current_user_id),
    storage: UserFileStorage = Depends(get_file_storage)
):
    """
    Read one file.

    An empty name (GET /v1/files/) lists files instead.
    """
    if not filename:
        names = await run_in_threadpool(storage.list_files, user_id)
        file_operations.inc(operation='list', status='success')
        return names

    try:
        content, content_type = await run_in_threadpool(storage.get_file, user_id, filename)
    except NotFoundError as e:
        raise _not_found('get', e) from e

    file_operations.inc(operation='get', status='success')

    # Serve the stored type verbatim; media_type would append a charset
    headers = {"Content-Type": content_type} if content_type else {}
    return Response(content=content, headers=headers)


# =============================================================================
# Create / Overwrite
# =============================================================================

def _upload_length(content_length: Optional[str], limit: int) -> int:
    """
    Validate the declared upload size.

    Raises:
        HTTPException: 400 if missing, malformed, zero or over the limit
    """
    if content_length is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content-Length required")
    try:
        length = int(content_length)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="invalid Content-Length"
        ) from None
    if length <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="empty upload")
    if length > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"upload exceeds {limit} bytes"
        )
    return length


@router.put(
    "/files/{filename:path}",
    response_model=StoredFileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store file",
    description="Create or overwrite a file with the raw request body"
)
async def put_file(
    filename: str,
    request: Request,
    content_length: Optional[str] = Header(None),
    content_type: Optional[str] = Header(None),
    user_id: str = Depends(get_current_user_id),
    storage: UserFileStorage = Depends(get_file_storage),
    settings: Settings = Depends(get_settings)
) -> StoredFileResponse:
    """
    Store a file.

    The body is read (capped at the upload limit) before any store
    transaction opens, and must match the declared Content-Length.
    """
    if not filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file name required")

    limit = settings.storage.max_upload_bytes
    declared = _upload_length(content_length, limit)

    content = await read_limited_body(request, limit)
    if len(content) != declared:
        file_operations.inc(operation='put', status='rejected')
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="body length does not match Content-Length"
        )

    descriptor = await run_in_threadpool(
        storage.put_file,
        user_id,
        filename,
        content_type or "",
        content,
    )

    file_operations.inc(operation='put', status='success')
    upload_bytes.observe(len(content))
    logger.info(f"Stored file '{filename}' ({len(content)} bytes)")

    return StoredFileResponse(
        name=filename,
        id=descriptor.content_id,
        content_type=descriptor.content_type,
        content_length=descriptor.content_length,
    )


# =============================================================================
# Delete
# =============================================================================

@router.delete(
    "/files/{filename:path}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete file",
    description="Remove a file and its content"
)
async def delete_file(
    filename: str,
    user_id: str = Depends(get_current_user_id),
    storage: UserFileStorage = Depends(get_file_storage)
) -> Response:
    """Delete one file."""
    if not filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file name required")

    try:
        await run_in_threadpool(storage.delete_file, user_id, filename)
    except NotFoundError as e:
        raise _not_found('delete', e) from e

    file_operations.inc(operation='delete', status='success')
    logger.info(f"Deleted file '{filename}'")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
