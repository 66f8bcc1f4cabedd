"""
Authentication dependencies for portal and preview endpoints
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Query

from models.enums import TokenScope
from services.portal_token_service import PortalClaims, PortalTokenService, get_portal_token_service
from utils.error_handling import AuthError

logger = logging.getLogger(__name__)


def extract_token(authorization: Optional[str], token: Optional[str]) -> str:
    """
    Pull the token from "Authorization: Bearer <token>" or a ?token= parameter

    Raises:
        AuthError: neither is present or the header is malformed
    """
    if authorization:
        if not authorization.startswith("Bearer "):
            logger.warning("AUTH: Invalid Authorization header format")
            raise AuthError("Invalid authorization header format. Expected 'Bearer <token>'")
        return authorization[7:].strip()
    if token:
        return token
    raise AuthError("Missing token")


async def authenticate_token(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
    token_service: PortalTokenService = Depends(get_portal_token_service),
) -> PortalClaims:
    """FastAPI dependency: verified claims of any portal or reviewer token"""
    claims = token_service.verify(extract_token(authorization, token))
    logger.info(f"AUTH: {claims.role} token verified for root {claims.root_id}")
    return claims


async def require_debtor(claims: PortalClaims = Depends(authenticate_token)) -> PortalClaims:
    """Strict portal gate: debtor tokens only"""
    return PortalTokenService.require_debtor(claims)


async def require_preview_access(claims: PortalClaims = Depends(authenticate_token)) -> PortalClaims:
    """Shared gate: reviewers, or debtors holding the preview or list scope"""
    return PortalTokenService.require_role_or_scope(claims, [TokenScope.PREVIEW.value, TokenScope.LIST.value])


async def require_list_access(claims: PortalClaims = Depends(authenticate_token)) -> PortalClaims:
    """Shared gate for folder listings: reviewers, or debtors holding the list scope"""
    return PortalTokenService.require_role_or_scope(claims, [TokenScope.LIST.value])
