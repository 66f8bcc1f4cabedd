"""
File transfer handlers: upload, move, comment, list and streamed preview
"""

import logging
import mimetypes
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import quote

from fastapi import UploadFile

from config.settings import MAX_UPLOAD_BYTES, FOLDER_LIST_LIMIT, PREVIEW_CACHE_SECONDS
from utils.error_handling import NotFoundError, PayloadTooLargeError, UpstreamError, ValidationError
from utils.links import decorate_file
from utils.naming import build_stored_name

logger = logging.getLogger(__name__)


async def read_upload(upload: Optional[UploadFile], max_bytes: Optional[int] = None) -> Tuple[bytes, str, str]:
    """
    Read a multipart file into memory, enforcing the upload size limit

    Returns:
        (data, original filename, mime type)
    """
    if upload is None or not upload.filename:
        raise ValidationError("file is required")
    max_bytes = max_bytes or MAX_UPLOAD_BYTES

    # Read one byte past the limit so oversize payloads are detected without buffering them whole
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise PayloadTooLargeError(f"File exceeds the {max_bytes} byte upload limit")

    mime_type = upload.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = mimetypes.guess_type(upload.filename)[0] or "application/octet-stream"
    return data, upload.filename, mime_type


async def upload_file(
    gateway,
    folder_id: str,
    upload: Optional[UploadFile],
    name_prefix: Optional[str] = None,
    make_public: bool = False,
    max_bytes: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Store an uploaded file in folder_id as [prefix_]timestamp_name

    Returns:
        Drive file record decorated with isPublic and derived links
    """
    if not folder_id:
        raise ValidationError("folderId is required")

    data, original_name, mime_type = await read_upload(upload, max_bytes)
    stored_name = build_stored_name(original_name, prefix=name_prefix)
    if not stored_name:
        raise ValidationError(f"Invalid file name: {original_name!r}")

    created = await gateway.create_file(stored_name, folder_id, mime_type, data)
    if make_public:
        await gateway.grant_public_read(created["id"])

    return decorate_file(created, is_public=make_public)


async def move_file(gateway, file_id: str, source_folder_id: str, destination_folder_id: str) -> Dict[str, Any]:
    """Reparent a file between two explicitly given folders"""
    return await gateway.reparent(file_id, destination_folder_id, [source_folder_id])


async def move_file_smart(gateway, file_id: str, destination_folder_id: str) -> Dict[str, Any]:
    """Reparent a file into destination_folder_id, removing whatever parents it has now"""
    meta = await gateway.get_metadata(file_id, fields="id, parents")
    current_parents = [p for p in (meta.get("parents") or []) if p != destination_folder_id]
    return await gateway.reparent(file_id, destination_folder_id, current_parents)


async def append_comment(gateway, file_id: str, message: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Append a timestamped line to the file's description"""
    meta = await gateway.get_metadata(file_id, fields="id, description")
    stamp = (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    line = f"[{stamp}] {message.strip()}"
    existing = (meta.get("description") or "").rstrip()
    description = f"{existing}\n{line}" if existing else line
    return await gateway.update_description(file_id, description)


async def list_folder_files(gateway, folder_id: str, limit: int = FOLDER_LIST_LIMIT) -> List[Dict[str, Any]]:
    """Non-trashed children of a folder, most recently modified first"""
    files = await gateway.list_children(folder_id, order_by="modifiedTime desc", page_size=limit)
    return [decorate_file(f) for f in files[:limit]]


def content_disposition(filename: Optional[str]) -> str:
    """Build an inline Content-Disposition with an RFC 5987 UTF-8 filename"""
    filename = filename or "file"
    printable = "".join(ch for ch in filename if ord(ch) >= 0x20 and ch != "\x7f")
    ascii_fallback = printable.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f"inline; filename=\"{ascii_fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def check_preview_size(meta: Dict[str, Any], max_bytes: int) -> None:
    size = meta.get("size")
    if size is not None and int(size) > max_bytes:
        raise PayloadTooLargeError(f"File is {size} bytes, preview limit is {max_bytes}")


def preview_headers(meta: Dict[str, Any]) -> Dict[str, str]:
    headers = {
        "Content-Disposition": content_disposition(meta.get("name")),
        "Cache-Control": f"private, max-age={PREVIEW_CACHE_SECONDS}",
    }
    if meta.get("md5Checksum"):
        headers["ETag"] = f"\"{meta['md5Checksum']}\""
    if meta.get("size") is not None:
        headers["Content-Length"] = str(meta["size"])
    return headers


async def open_preview_stream(gateway, file_id: str, chunk_size: int) -> AsyncIterator[bytes]:
    """
    Start a download and return an iterator over its bytes

    The first chunk is fetched before returning so a failing download turns
    into a 502 JSON error instead of an empty 200. Errors after that abort the
    response mid-stream.
    """
    chunks = gateway.iter_bytes(file_id, chunk_size=chunk_size)
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = b""
    except NotFoundError:
        raise
    except UpstreamError as e:
        raise UpstreamError(e.message, status_code=502)
    except Exception as e:
        logger.error(f"Preview download for {file_id} failed to start: {e}")
        raise UpstreamError("Failed to read file from Google Drive", status_code=502)

    async def stream():
        if first:
            yield first
        try:
            async for chunk in chunks:
                yield chunk
        except Exception as e:
            logger.error(f"Preview stream for {file_id} aborted: {e}")
            raise

    return stream()
