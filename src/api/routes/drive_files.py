"""
Drive file API routes - upload, list, move and comment
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from models.drive import MoveFileRequest, SmartMoveFileRequest, CommentRequest
from services.drive_gateway import DriveGateway, get_drive_gateway, describe_drive_error
from services.file_transfer import upload_file, list_folder_files, move_file, move_file_smart, append_comment
from utils.error_handling import ServiceError, UpstreamError, set_endpoint_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload-to-folder")
async def upload_to_folder(
    file: Optional[UploadFile] = File(None),
    folder_id: Optional[str] = Form(None, alias="folderId"),
    name_prefix: Optional[str] = Form(None, alias="namePrefix"),
    make_public: bool = Form(False, alias="makePublic"),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Upload a single multipart file into a folder"""
    set_endpoint_context("upload-to-folder")
    logger.info(f"📄 Upload request for folder: {folder_id}")

    try:
        stored = await upload_file(gateway, folder_id, file, name_prefix=name_prefix, make_public=make_public)
        return {"file": stored}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"upload-to-folder error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.get("/files-in-folder")
async def files_in_folder(
    folder_id: str = Query(..., alias="folderId", min_length=1),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """List a folder's files, newest first"""
    set_endpoint_context("files-in-folder")
    try:
        return {"files": await list_folder_files(gateway, folder_id)}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"files-in-folder error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.post("/move-file")
async def move_file_route(
    request: MoveFileRequest,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Move a file between two given folders"""
    set_endpoint_context("move-file")
    try:
        moved = await move_file(gateway, request.file_id, request.source_folder_id, request.destination_folder_id)
        return {"file": moved}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"move-file error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.post("/move-file-smart")
async def move_file_smart_route(
    request: SmartMoveFileRequest,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Move a file into a folder, resolving its current parents first"""
    set_endpoint_context("move-file-smart")
    try:
        moved = await move_file_smart(gateway, request.file_id, request.destination_folder_id)
        return {"file": moved}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"move-file-smart error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.post("/comment")
async def comment_on_file(
    request: CommentRequest,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Append a reviewer comment to the file description"""
    set_endpoint_context("comment")
    try:
        updated = await append_comment(gateway, request.file_id, request.message)
        return {"file": updated}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"comment error: {e}")
        raise UpstreamError(describe_drive_error(e))
