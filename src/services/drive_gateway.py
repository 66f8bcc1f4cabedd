"""
Google Drive gateway - the only module that talks to the Drive v3 API
"""

import io
import json
import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httplib2
import google_auth_httplib2
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaInMemoryUpload, MediaIoBaseDownload

from config.settings import (
    CLIENT_ID, CLIENT_SECRET, REFRESH_TOKEN, GOOGLE_SERVICE_ACCOUNT_FILE,
    GOOGLE_TOKEN_URI, GOOGLE_DRIVE_PARENT_ID, DRIVE_SCOPES, DRIVE_LIST_PAGE_SIZE,
)
from utils.error_handling import NotFoundError, UpstreamError, ValidationError
from utils.naming import sanitize_name

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id, name, mimeType, webViewLink"
DEFAULT_METADATA_FIELDS = "id, name, mimeType, parents, size, md5Checksum, webViewLink, description, modifiedTime"
LIST_FIELDS = "files(id, name, mimeType, webViewLink, size, modifiedTime, createdTime)"
HTTP_TIMEOUT = 60


def quote_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal"""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def describe_drive_error(exc: Exception) -> str:
    """Extract the provider's message from a Drive failure, falling back to a generic string"""
    if isinstance(exc, HttpError):
        try:
            payload = json.loads(exc.content.decode("utf-8"))
            message = payload.get("error", {}).get("message")
            if message:
                return message
        except (ValueError, AttributeError):
            pass
        reason = getattr(exc, "reason", None)
        if reason:
            return str(reason)
    return str(exc) or "Google Drive API error"


def build_credentials():
    """Build Drive credentials from the environment (service account wins when configured)"""
    if GOOGLE_SERVICE_ACCOUNT_FILE:
        return service_account.Credentials.from_service_account_file(
            GOOGLE_SERVICE_ACCOUNT_FILE, scopes=DRIVE_SCOPES
        )
    return Credentials(
        token=None,
        refresh_token=REFRESH_TOKEN,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        scopes=DRIVE_SCOPES,
    )


class DriveGateway:
    """
    Async wrapper around the Drive v3 client.

    Each call is a single provider request with no retries. Requests run in
    worker threads, each with its own authorized httplib2 transport because
    httplib2.Http objects must not be shared between threads.
    """

    def __init__(self, credentials, default_parent_id: Optional[str] = None,
                 page_size: int = DRIVE_LIST_PAGE_SIZE, service=None):
        self._credentials = credentials
        self.default_parent_id = default_parent_id
        self.page_size = page_size
        self._service = service or build("drive", "v3", credentials=credentials, cache_discovery=False)

    def _new_http(self):
        return google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=HTTP_TIMEOUT))

    async def _execute(self, request, operation: str) -> Any:
        try:
            return await asyncio.to_thread(request.execute, http=self._new_http())
        except HttpError as e:
            message = describe_drive_error(e)
            if e.resp.status == 404:
                raise NotFoundError(message)
            logger.error(f"Drive {operation} failed ({e.resp.status}): {message}")
            raise UpstreamError(message)

    async def create_folder(self, name: str, parent_ids: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Create a folder.

        Args:
            name: Folder name, sanitized before use
            parent_ids: Parents; empty means the configured default parent or Drive root

        Returns:
            Dict with id, name and webViewLink
        """
        safe_name = sanitize_name(name)
        if not safe_name:
            raise ValidationError(f"Invalid folder name: {name!r}")

        parents = [p for p in (parent_ids or []) if p]
        if not parents and self.default_parent_id:
            parents = [self.default_parent_id]

        body = {"name": safe_name, "mimeType": FOLDER_MIME_TYPE}
        if parents:
            body["parents"] = parents

        request = self._service.files().create(body=body, fields=FILE_FIELDS, supportsAllDrives=True)
        folder = await self._execute(request, "create_folder")
        logger.info(f"Created folder '{safe_name}' ({folder['id']}) under {parents or 'root'}")
        return folder

    async def create_file(self, name: str, parent_id: str, mime_type: str, data: bytes) -> Dict[str, Any]:
        """Upload a byte buffer as a new file inside parent_id"""
        media = MediaInMemoryUpload(data, mimetype=mime_type or "application/octet-stream", resumable=False)
        body = {"name": name, "parents": [parent_id]}
        request = self._service.files().create(
            body=body,
            media_body=media,
            fields="id, name, mimeType, webViewLink, size, parents",
            supportsAllDrives=True,
        )
        created = await self._execute(request, "create_file")
        logger.info(f"Uploaded file '{name}' ({created['id']}, {len(data)} bytes) to {parent_id}")
        return created

    async def get_metadata(self, file_id: str, fields: str = DEFAULT_METADATA_FIELDS) -> Dict[str, Any]:
        """Fetch file metadata; NotFoundError if the id is absent or not accessible"""
        request = self._service.files().get(fileId=file_id, fields=fields, supportsAllDrives=True)
        return await self._execute(request, "get_metadata")

    async def list_children(
        self,
        parent_id: str,
        mime_type: Optional[str] = None,
        order_by: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List non-trashed children of a folder.

        Only a single page is requested; entries beyond page_size are dropped.
        """
        query = f"'{quote_query_value(parent_id)}' in parents and trashed = false"
        if mime_type:
            query += f" and mimeType = '{quote_query_value(mime_type)}'"

        params = {
            "q": query,
            "fields": LIST_FIELDS,
            "pageSize": min(page_size or self.page_size, self.page_size),
            "supportsAllDrives": True,
            "includeItemsFromAllDrives": True,
        }
        if order_by:
            params["orderBy"] = order_by

        result = await self._execute(self._service.files().list(**params), "list_children")
        return result.get("files", [])

    async def reparent(self, file_id: str, add_parent_id: str, remove_parent_ids: List[str]) -> Dict[str, Any]:
        """Move a file by adding one parent and removing others"""
        request = self._service.files().update(
            fileId=file_id,
            addParents=add_parent_id,
            removeParents=",".join(p for p in remove_parent_ids if p),
            fields="id, name, parents, webViewLink",
            supportsAllDrives=True,
        )
        moved = await self._execute(request, "reparent")
        logger.info(f"Moved {file_id} from {remove_parent_ids} to {add_parent_id}")
        return moved

    async def grant_public_read(self, file_id: str) -> None:
        """Grant anyone-with-link read access (every call creates a new permission)"""
        request = self._service.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone"},
            supportsAllDrives=True,
        )
        await self._execute(request, "grant_public_read")

    async def update_description(self, file_id: str, description: str) -> Dict[str, Any]:
        request = self._service.files().update(
            fileId=file_id,
            body={"description": description},
            fields="id, name, description, webViewLink",
            supportsAllDrives=True,
        )
        return await self._execute(request, "update_description")

    async def trash(self, file_id: str) -> None:
        """Move a file or folder (with its subtree) to the trash"""
        request = self._service.files().update(
            fileId=file_id, body={"trashed": True}, fields="id", supportsAllDrives=True
        )
        await self._execute(request, "trash")
        logger.info(f"Trashed {file_id}")

    async def iter_bytes(self, file_id: str, chunk_size: int = 1024 * 1024) -> AsyncIterator[bytes]:
        """Stream a file's content chunk by chunk"""
        request = self._service.files().get_media(fileId=file_id, supportsAllDrives=True)
        # MediaIoBaseDownload picks up the transport from the request
        request.http = self._new_http()
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request, chunksize=chunk_size)

        done = False
        while not done:
            try:
                _, done = await asyncio.to_thread(downloader.next_chunk)
            except HttpError as e:
                message = describe_drive_error(e)
                if e.resp.status == 404:
                    raise NotFoundError(message)
                raise UpstreamError(message, status_code=502)
            chunk = buffer.getvalue()
            buffer.seek(0)
            buffer.truncate(0)
            if chunk:
                yield chunk


# Global gateway instance, created once at startup
_drive_gateway: Optional[DriveGateway] = None


def init_drive_gateway() -> DriveGateway:
    """Create the process-wide Drive gateway"""
    global _drive_gateway
    _drive_gateway = DriveGateway(build_credentials(), default_parent_id=GOOGLE_DRIVE_PARENT_ID)
    logger.info("Drive gateway initialized")
    return _drive_gateway


def get_drive_gateway() -> DriveGateway:
    """FastAPI dependency returning the Drive gateway"""
    if _drive_gateway is None:
        raise UpstreamError("Google Drive client is not initialized")
    return _drive_gateway


def is_drive_ready() -> bool:
    return _drive_gateway is not None
