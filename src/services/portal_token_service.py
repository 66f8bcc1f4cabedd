"""
Portal token service - signed, time-limited tokens scoped to one case root

Two flavors share one claim layout:
- debtor tokens (PORTAL_TOKEN_SECRET) bound to a root folder and docType list
- reviewer tokens (REVIEWER_TOKEN_SECRET), optionally bound to a root

There is no server-side registry; expiry is the only way a token stops working.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import jwt

from config.settings import TokenConfig
from models.enums import TokenRole, TokenScope
from utils.error_handling import AuthError, ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DEBTOR_SCOPE = [TokenScope.PREVIEW.value, TokenScope.LIST.value]


@dataclass
class PortalClaims:
    """Verified claims carried by a portal or reviewer token"""
    root_id: Optional[str]
    debtor_name: Optional[str]
    doc_types: List[str]
    role: str
    scope: List[str] = field(default_factory=list)
    exp: Optional[int] = None
    iat: Optional[int] = None

    @property
    def is_reviewer(self) -> bool:
        return self.role == TokenRole.REVIEWER.value

    def has_any_scope(self, scopes: Iterable[str]) -> bool:
        return any(scope in self.scope for scope in scopes)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PortalClaims":
        return cls(
            root_id=payload.get("rootId") or None,
            debtor_name=payload.get("debtorName"),
            doc_types=list(payload.get("docTypes") or []),
            role=payload["role"],
            scope=list(payload.get("scope") or []),
            exp=payload.get("exp"),
            iat=payload.get("iat"),
        )


class PortalTokenService:
    """Issues and verifies portal and reviewer JWTs"""

    def __init__(
        self,
        portal_secret: str = TokenConfig.PORTAL_SECRET,
        reviewer_secret: str = TokenConfig.REVIEWER_SECRET,
        issuer: str = TokenConfig.ISSUER,
        audience: str = TokenConfig.AUDIENCE,
        default_ttl: int = TokenConfig.DEFAULT_TTL,
        algorithm: str = TokenConfig.ALGORITHM,
    ):
        self.secrets = {
            TokenRole.DEBTOR.value: portal_secret,
            TokenRole.REVIEWER.value: reviewer_secret,
        }
        self.issuer = issuer
        self.audience = audience
        self.default_ttl = default_ttl
        self.algorithm = algorithm

    def issue(
        self,
        root_id: Optional[str],
        debtor_name: Optional[str],
        doc_types: Optional[List[str]] = None,
        role: str = TokenRole.DEBTOR.value,
        scope: Optional[List[str]] = None,
        ttl: Optional[int] = None,
    ) -> str:
        """
        Issue a signed token

        Args:
            root_id: Case root folder the token is bound to (required for debtors)
            debtor_name: Display name of the debtor (or reviewer label)
            doc_types: Document types the holder may upload
            role: "debtor" or "reviewer"
            scope: Capability scopes; debtors default to preview + list
            ttl: Lifetime in seconds

        Returns:
            JWT token string
        """
        role = getattr(role, "value", role)
        if role not in self.secrets:
            raise ValidationError(f"Unknown role: {role}")
        if role == TokenRole.DEBTOR.value and not root_id:
            raise ValidationError("rootId is required for debtor tokens")

        if scope is None:
            scope = DEFAULT_DEBTOR_SCOPE if role == TokenRole.DEBTOR.value else []
        invalid_scopes = [s for s in scope if s not in {item.value for item in TokenScope}]
        if invalid_scopes:
            raise ValidationError(f"Unknown scope values: {invalid_scopes}")

        current_time = int(time.time())
        payload = {
            "iss": self.issuer,
            "aud": self.audience,
            "rootId": root_id,
            "debtorName": debtor_name,
            "docTypes": list(doc_types or []),
            "role": role,
            "scope": list(scope),
            "iat": current_time,
            "exp": current_time + (ttl if ttl is not None else self.default_ttl),
        }

        token = jwt.encode(payload, self.secrets[role], algorithm=self.algorithm)
        logger.info(f"Issued {role} token for root {root_id} (expires in {payload['exp'] - current_time}s)")
        return token

    def verify(self, token: str) -> PortalClaims:
        """
        Verify signature, expiry, issuer and audience

        The signing key is chosen by the role claim, so a debtor token signed
        with the reviewer secret (or the reverse) is rejected.

        Raises:
            AuthError: token missing, tampered, expired or malformed
        """
        if not token:
            raise AuthError("Missing token")

        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
            role = unverified.get("role")
            if role not in self.secrets:
                raise jwt.InvalidTokenError(f"Unknown role: {role}")

            payload = jwt.decode(
                token,
                self.secrets[role],
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Portal token has expired")
            raise AuthError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Portal token validation failed: {str(e)}")
            raise AuthError("Invalid token")

        return PortalClaims.from_payload(payload)

    @staticmethod
    def require_debtor(claims: PortalClaims) -> PortalClaims:
        """Strict gate for portal routes: role must be debtor and bound to a root"""
        if claims.role != TokenRole.DEBTOR.value or not claims.root_id:
            raise ForbiddenError("Debtor token required")
        return claims

    @staticmethod
    def require_role_or_scope(claims: PortalClaims, scopes: Iterable[str]) -> PortalClaims:
        """Shared gate: reviewers always pass, debtors need one of scopes"""
        scopes = list(scopes)
        if claims.is_reviewer:
            return claims
        if claims.role == TokenRole.DEBTOR.value and claims.has_any_scope(scopes):
            return claims
        raise ForbiddenError(f"Token lacks required scope: {', '.join(scopes)}")


# Global service instance
_portal_token_service: Optional[PortalTokenService] = None


def get_portal_token_service() -> PortalTokenService:
    """Get the global portal token service instance"""
    global _portal_token_service
    if _portal_token_service is None:
        _portal_token_service = PortalTokenService()
    return _portal_token_service
