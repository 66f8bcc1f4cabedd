"""
Cases service - case registry with public share links and case documents
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import asyncpg

from database.connection import get_db_pool
from models.enums import CaseStatus
from utils.error_handling import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

PUBLIC_ID_ALPHABET = string.ascii_letters + string.digits
PUBLIC_ID_LENGTH = 16
PUBLIC_ID_ATTEMPTS = 3

CASE_COLUMNS = '"id", "debtorName", "status", "createdAt"'
LINK_COLUMNS = '"id", "caseId", "publicId", "isActive", "createdAt"'
DOCUMENT_COLUMNS = '"id", "caseId", "docType", "status", "submittedAt"'


def generate_public_id(length: int = PUBLIC_ID_LENGTH) -> str:
    """Random opaque share identifier"""
    return "".join(secrets.choice(PUBLIC_ID_ALPHABET) for _ in range(length))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else value


def serialize_case(row) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "debtorName": row["debtorName"],
        "status": row["status"],
        "createdAt": _iso(row["createdAt"]),
    }


def serialize_link(row) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "caseId": str(row["caseId"]),
        "publicId": row["publicId"],
        "isActive": row["isActive"],
        "createdAt": _iso(row["createdAt"]),
    }


def serialize_document(row) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "caseId": str(row["caseId"]),
        "docType": row["docType"],
        "status": row["status"],
        "submittedAt": _iso(row["submittedAt"]),
    }


def _parse_case_id(case_id: str) -> int:
    try:
        return int(case_id)
    except (TypeError, ValueError):
        raise NotFoundError("Case not found")


class CasesService:
    """Service for the case registry tables"""

    def __init__(self, pool_getter: Callable = get_db_pool):
        self._pool_getter = pool_getter

    def _pool(self):
        pool = self._pool_getter()
        if pool is None:
            raise UpstreamError("Database is not configured")
        return pool

    async def create_case(self, debtor_name: Optional[str], status: str = CaseStatus.OPEN.value) -> Dict[str, Any]:
        """
        Create a case and its public link in one transaction

        Args:
            debtor_name: Optional debtor display name
            status: Initial case status

        Returns:
            {"case": {...}, "publicLink": {...}}
        """
        async with self._pool().acquire() as conn:
            async with conn.transaction():
                case_row = await conn.fetchrow(
                    f'INSERT INTO "Case" ("debtorName", "status") VALUES ($1, $2) RETURNING {CASE_COLUMNS}',
                    debtor_name, status
                )

                link_row = None
                for attempt in range(1, PUBLIC_ID_ATTEMPTS + 1):
                    try:
                        # Savepoint so a publicId collision doesn't abort the outer transaction
                        async with conn.transaction():
                            link_row = await conn.fetchrow(
                                f'INSERT INTO "CasePublicLink" ("caseId", "publicId") VALUES ($1, $2) '
                                f'RETURNING {LINK_COLUMNS}',
                                case_row["id"], generate_public_id()
                            )
                        break
                    except asyncpg.UniqueViolationError:
                        logger.warning(f"Public id collision for case {case_row['id']} (attempt {attempt})")
                if link_row is None:
                    raise UpstreamError("Could not allocate a unique public id")

        logger.info(f"Created case {case_row['id']} with public link {link_row['publicId']}")
        return {"case": serialize_case(case_row), "publicLink": serialize_link(link_row)}

    async def get_case(self, case_id: str) -> Dict[str, Any]:
        """Case with its public link and documents"""
        case_pk = _parse_case_id(case_id)
        async with self._pool().acquire() as conn:
            case_row = await conn.fetchrow(f'SELECT {CASE_COLUMNS} FROM "Case" WHERE "id" = $1', case_pk)
            if case_row is None:
                raise NotFoundError("Case not found")
            link_row = await conn.fetchrow(
                f'SELECT {LINK_COLUMNS} FROM "CasePublicLink" WHERE "caseId" = $1', case_pk
            )
            document_rows = await self._fetch_documents(conn, case_pk)

        return {
            "case": serialize_case(case_row),
            "publicLink": serialize_link(link_row) if link_row else None,
            "documents": [serialize_document(row) for row in document_rows],
        }

    async def get_public_case(self, public_id: str) -> Dict[str, Any]:
        """Resolve an active share link; unknown and deactivated ids are both NotFound"""
        async with self._pool().acquire() as conn:
            case_row = await conn.fetchrow(
                'SELECT c."id", c."debtorName", c."status", c."createdAt" '
                'FROM "CasePublicLink" l JOIN "Case" c ON c."id" = l."caseId" '
                'WHERE l."publicId" = $1 AND l."isActive" = TRUE',
                public_id
            )
            if case_row is None:
                raise NotFoundError("Case not found")
            document_rows = await self._fetch_documents(conn, case_row["id"])

        return {
            "case": serialize_case(case_row),
            "documents": [serialize_document(row) for row in document_rows],
        }

    async def set_link_active(self, case_id: str, is_active: bool) -> Dict[str, Any]:
        """Activate or deactivate a case's public link"""
        case_pk = _parse_case_id(case_id)
        async with self._pool().acquire() as conn:
            link_row = await conn.fetchrow(
                f'UPDATE "CasePublicLink" SET "isActive" = $2 WHERE "caseId" = $1 RETURNING {LINK_COLUMNS}',
                case_pk, is_active
            )
        if link_row is None:
            raise NotFoundError("Case not found")
        logger.info(f"Public link for case {case_id} set active={is_active}")
        return serialize_link(link_row)

    async def add_document(self, case_id: str, doc_type: str, status: str,
                           submitted_at: Optional[datetime] = None) -> Dict[str, Any]:
        case_pk = _parse_case_id(case_id)
        if submitted_at is not None and submitted_at.tzinfo is not None:
            # Columns are TIMESTAMP without time zone, stored as UTC
            submitted_at = submitted_at.astimezone(timezone.utc).replace(tzinfo=None)
        async with self._pool().acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f'INSERT INTO "CaseDocument" ("caseId", "docType", "status", "submittedAt") '
                    f'VALUES ($1, $2, $3, $4) RETURNING {DOCUMENT_COLUMNS}',
                    case_pk, doc_type, status, submitted_at
                )
            except asyncpg.ForeignKeyViolationError:
                raise NotFoundError("Case not found")
        return serialize_document(row)

    @staticmethod
    async def _fetch_documents(conn, case_pk: int):
        return await conn.fetch(
            f'SELECT {DOCUMENT_COLUMNS} FROM "CaseDocument" WHERE "caseId" = $1 ORDER BY "id"',
            case_pk
        )


# Global service instance
_cases_service: Optional[CasesService] = None


def get_cases_service() -> CasesService:
    """Get the global cases service instance"""
    global _cases_service
    if _cases_service is None:
        _cases_service = CasesService()
    return _cases_service
