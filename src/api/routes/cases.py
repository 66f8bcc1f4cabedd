"""
Case registry API routes - cases, public share links and case documents
"""

import logging
from fastapi import APIRouter, Depends

from models.case import CaseCreateRequest, PublicLinkUpdateRequest, CaseDocumentCreateRequest
from services.cases_service import CasesService, get_cases_service
from utils.error_handling import ServiceError, UpstreamError, set_endpoint_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/cases")
async def create_case(
    request: CaseCreateRequest,
    cases_service: CasesService = Depends(get_cases_service)
):
    """Create a case together with its public share link"""
    set_endpoint_context("create-case")
    try:
        return await cases_service.create_case(request.debtor_name, status=request.status)

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to create case: {e}")
        raise UpstreamError(f"Service error: {str(e)}")


@router.get("/cases/{case_id}")
async def get_case(
    case_id: str,
    cases_service: CasesService = Depends(get_cases_service)
):
    """Get case details with public link and documents"""
    try:
        return await cases_service.get_case(case_id)

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to get case: {e}")
        raise UpstreamError(f"Service error: {str(e)}")


@router.post("/cases/{case_id}/public-link")
async def update_public_link(
    case_id: str,
    request: PublicLinkUpdateRequest,
    cases_service: CasesService = Depends(get_cases_service)
):
    """Activate or deactivate the case's public link"""
    try:
        return {"publicLink": await cases_service.set_link_active(case_id, request.is_active)}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to update public link: {e}")
        raise UpstreamError(f"Service error: {str(e)}")


@router.post("/cases/{case_id}/documents")
async def add_case_document(
    case_id: str,
    request: CaseDocumentCreateRequest,
    cases_service: CasesService = Depends(get_cases_service)
):
    """Record a document for a case"""
    try:
        document = await cases_service.add_document(
            case_id, request.doc_type, request.status, request.submitted_at
        )
        return {"document": document}

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to add case document: {e}")
        raise UpstreamError(f"Service error: {str(e)}")


@router.get("/public/cases/{public_id}")
async def get_public_case(
    public_id: str,
    cases_service: CasesService = Depends(get_cases_service)
):
    """Public view of a case via its share identifier"""
    try:
        return await cases_service.get_public_case(public_id)

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to get public case: {e}")
        raise UpstreamError(f"Service error: {str(e)}")
