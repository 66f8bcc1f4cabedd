"""
Debtor portal API routes

Portal links carry a debtor token bound to one case root. Every /portal route
uses the strict debtor-only gate.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlencode
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from config.settings import PORTAL_BASE_URL, PORTAL_UPLOADS_PUBLIC
from models.drive import IssuePortalLinkRequest
from models.enums import StatusRole, TokenRole
from services.case_tree import resolve_case_tree, doc_type_folder_map
from services.drive_gateway import DriveGateway, get_drive_gateway, describe_drive_error
from services.file_transfer import upload_file, list_folder_files
from services.portal_token_service import PortalClaims, PortalTokenService, get_portal_token_service
from utils.auth import require_debtor
from utils.error_handling import (
    ForbiddenError, NotFoundError, ServiceError, UpstreamError, ValidationError, set_endpoint_context
)
from utils.naming import sanitize_name

router = APIRouter()
logger = logging.getLogger(__name__)


async def pending_doc_type_folders(gateway: DriveGateway, root_id: str) -> Dict[str, str]:
    """{docType: folderId} under the pending status folder of a case root"""
    tree = await resolve_case_tree(gateway, root_id)
    return doc_type_folder_map(tree, StatusRole.PENDING)


async def resolve_doc_type_folder(gateway: DriveGateway, claims: PortalClaims, doc_type: Optional[str]) -> str:
    """Check docType against the token and find its pending folder"""
    if not doc_type:
        raise ValidationError("docType is required")
    if doc_type not in claims.doc_types:
        raise ForbiddenError(f"docType '{doc_type}' is not allowed for this link")

    folders = await pending_doc_type_folders(gateway, claims.root_id)
    folder_id = folders.get(doc_type)
    if not folder_id:
        raise NotFoundError(f"No folder for docType '{doc_type}'")
    return folder_id


@router.post("/issue-portal-link")
async def issue_portal_link(
    request: IssuePortalLinkRequest,
    gateway: DriveGateway = Depends(get_drive_gateway),
    token_service: PortalTokenService = Depends(get_portal_token_service)
):
    """
    Issue a debtor portal link for a case root

    Without docTypes the link covers every docType folder currently under the
    pending status folder.
    """
    set_endpoint_context("issue-portal-link")
    try:
        doc_types = [sanitize_name(d) for d in request.doc_types if sanitize_name(d)]
        if not doc_types:
            doc_types = list((await pending_doc_type_folders(gateway, request.root_id)).keys())

        ttl = request.ttl_seconds or token_service.default_ttl
        token = token_service.issue(
            request.root_id,
            request.debtor_name,
            doc_types,
            role=TokenRole.DEBTOR.value,
            ttl=ttl,
        )
        url = f"{PORTAL_BASE_URL}?{urlencode({'token': token})}"
        logger.info(f"🔗 Portal link issued for '{request.debtor_name}' on root {request.root_id}")
        return {"url": url, "token": token, "expiresIn": ttl}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"issue-portal-link error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.get("/portal/info")
async def portal_info(claims: PortalClaims = Depends(require_debtor)):
    """Echo the verified claims the portal front-end needs"""
    return {
        "debtorName": claims.debtor_name,
        "docTypes": claims.doc_types,
        "rootId": claims.root_id,
        "exp": claims.exp,
    }


@router.get("/portal/structure")
async def portal_structure(
    claims: PortalClaims = Depends(require_debtor),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Pending upload folders for the docTypes on the token"""
    set_endpoint_context("portal-structure")
    try:
        folders = await pending_doc_type_folders(gateway, claims.root_id)
        pending = {doc_type: folders[doc_type] for doc_type in claims.doc_types if doc_type in folders}
        return {"pending": pending}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"portal-structure error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.post("/portal/upload")
async def portal_upload(
    file: Optional[UploadFile] = File(None),
    doc_type: Optional[str] = Form(None, alias="docType"),
    claims: PortalClaims = Depends(require_debtor),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Upload a document into the pending folder for docType"""
    set_endpoint_context("portal-upload")
    try:
        folder_id = await resolve_doc_type_folder(gateway, claims, doc_type)
        stored = await upload_file(gateway, folder_id, file, name_prefix=doc_type, make_public=PORTAL_UPLOADS_PUBLIC)
        logger.info(f"📄 Portal upload by '{claims.debtor_name}' into {doc_type}: {stored['id']}")
        return {"file": stored}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"portal-upload error: {e}")
        raise UpstreamError(describe_drive_error(e))


@router.get("/portal/files")
async def portal_files(
    doc_type: Optional[str] = Query(None, alias="docType"),
    claims: PortalClaims = Depends(require_debtor),
    gateway: DriveGateway = Depends(get_drive_gateway)
):
    """Files already submitted for docType"""
    set_endpoint_context("portal-files")
    try:
        folder_id = await resolve_doc_type_folder(gateway, claims, doc_type)
        return {"files": await list_folder_files(gateway, folder_id)}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"portal-files error: {e}")
        raise UpstreamError(describe_drive_error(e))
