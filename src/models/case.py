"""
Case registry Pydantic models
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from models.enums import CaseStatus


class CaseCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    debtor_name: Optional[str] = Field(None, alias="debtorName", max_length=200)
    status: str = Field(CaseStatus.OPEN.value, min_length=1)


class PublicLinkUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(..., alias="isActive")


class CaseDocumentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    doc_type: str = Field(..., alias="docType", min_length=1)
    status: str = Field(..., min_length=1)
    submitted_at: Optional[datetime] = Field(None, alias="submittedAt")
