"""
Case folder API routes - folder creation, case tree provisioning and resolution
"""

import logging
from fastapi import APIRouter, Depends, Query

from models.drive import CreateFolderRequest, CreateCaseFoldersRequest
from services.case_tree import build_case_tree, resolve_case_tree, delete_case_tree
from services.drive_gateway import DriveGateway, get_drive_gateway, describe_drive_error
from utils.error_handling import ServiceError, UpstreamError, ValidationError, set_endpoint_context
from utils.naming import sanitize_name

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create-folder")
async def create_folder(
    request: CreateFolderRequest,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Create a single folder, optionally public"""
    set_endpoint_context("create-folder")
    if not sanitize_name(request.name):
        raise ValidationError("name is invalid")

    try:
        folder = await gateway.create_folder(request.name, [request.parent_id] if request.parent_id else None)
        if request.make_public:
            await gateway.grant_public_read(folder["id"])
        return {"folder": folder}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"create-folder error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.post("/create-case-folders")
async def create_case_folders(
    request: CreateCaseFoldersRequest,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Create root / status folders / docType folders for a case"""
    set_endpoint_context("create-case-folders")
    logger.info(f"📁 Case tree request: '{request.root_name}' with {len(request.doc_types)} doc types")

    try:
        return await build_case_tree(
            gateway,
            request.root_name,
            doc_types=request.doc_types,
            make_public=request.make_public,
            parent_id=request.parent_id,
            create_manifest=request.create_manifest,
        )

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"create-case-folders error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.delete("/case-folders/{root_id}")
async def delete_case_folders(
    root_id: str,
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Trash a case tree, e.g. one left behind by a failed /create-case-folders"""
    set_endpoint_context("delete-case-folders")
    try:
        await delete_case_tree(gateway, root_id)
        return {"trashed": root_id}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"delete-case-folders error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.get("/case-structure")
async def get_case_structure(
    root_id: str = Query(..., alias="rootId", min_length=1),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Re-derive status and docType folder ids for an existing case root"""
    set_endpoint_context("case-structure")
    try:
        return await resolve_case_tree(gateway, root_id)

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"case-structure error: {e}")
        raise UpstreamError(describe_drive_error(e))
