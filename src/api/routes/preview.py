"""
Token-gated file preview and listing routes shared by reviewers and debtors
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from config.settings import PREVIEW_MAX_BYTES, PREVIEW_CHUNK_SIZE
from services.containment import is_under
from services.drive_gateway import DriveGateway, get_drive_gateway, describe_drive_error
from services.file_transfer import check_preview_size, preview_headers, open_preview_stream, list_folder_files
from services.portal_token_service import PortalClaims
from utils.auth import require_preview_access, require_list_access
from utils.error_handling import (
    ForbiddenError, ServiceError, UpstreamError, ValidationError, set_endpoint_context
)

router = APIRouter()
logger = logging.getLogger(__name__)

GOOGLE_APPS_MIME_PREFIX = "application/vnd.google-apps."


@router.get("/files/preview/{file_id}")
async def preview_file(
    file_id: str,
    claims: PortalClaims = Depends(require_preview_access),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Stream a file's bytes inline, restricted to the token's case root"""
    set_endpoint_context("files-preview")
    try:
        meta = await gateway.get_metadata(file_id)

        if not await is_under(gateway, file_id, claims.root_id):
            logger.warning(f"Preview of {file_id} denied: outside root {claims.root_id}")
            raise ForbiddenError("File is outside the permitted folder")

        mime_type = meta.get("mimeType") or "application/octet-stream"
        if mime_type.startswith(GOOGLE_APPS_MIME_PREFIX):
            raise ValidationError("Google Workspace files and folders cannot be previewed")

        check_preview_size(meta, PREVIEW_MAX_BYTES)
        stream = await open_preview_stream(gateway, file_id, PREVIEW_CHUNK_SIZE)

        return StreamingResponse(stream, media_type=mime_type, headers=preview_headers(meta))

    except UpstreamError as e:
        raise UpstreamError(e.message, status_code=502)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"files-preview error: {e}")
        raise UpstreamError(describe_drive_error(e), status_code=502)


@router.get("/files/list/{folder_id}")
async def list_files_scoped(
    folder_id: str,
    claims: PortalClaims = Depends(require_list_access),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """List a folder inside the token's case root"""
    set_endpoint_context("files-list")
    try:
        if folder_id != claims.root_id and not await is_under(gateway, folder_id, claims.root_id):
            raise ForbiddenError("Folder is outside the permitted folder")
        return {"files": await list_folder_files(gateway, folder_id)}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"files-list error: {e}")
        raise UpstreamError(describe_drive_error(e))
