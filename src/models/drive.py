"""
Drive folder, file and portal request models
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiModel(BaseModel):
    """Request bodies use camelCase on the wire"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class CreateFolderRequest(ApiModel):
    name: str = Field(..., min_length=1)
    make_public: bool = Field(False, alias="makePublic")
    parent_id: Optional[str] = Field(None, alias="parentId")


class CreateCaseFoldersRequest(ApiModel):
    root_name: str = Field(..., alias="rootName", min_length=1)
    doc_types: List[str] = Field(default_factory=list, alias="docTypes")
    make_public: bool = Field(False, alias="makePublic")
    parent_id: Optional[str] = Field(None, alias="parentId")
    create_manifest: bool = Field(False, alias="createManifest")

    @field_validator("doc_types", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class MoveFileRequest(ApiModel):
    file_id: str = Field(..., alias="fileId", min_length=1)
    source_folder_id: str = Field(..., alias="sourceFolderId", min_length=1)
    destination_folder_id: str = Field(..., alias="destinationFolderId", min_length=1)


class SmartMoveFileRequest(ApiModel):
    file_id: str = Field(..., alias="fileId", min_length=1)
    destination_folder_id: str = Field(..., alias="destinationFolderId", min_length=1)


class CommentRequest(ApiModel):
    file_id: str = Field(..., alias="fileId", min_length=1)
    message: str = Field(..., min_length=1, max_length=2000)


class IssuePortalLinkRequest(ApiModel):
    root_id: str = Field(..., alias="rootId", min_length=1)
    debtor_name: str = Field(..., alias="debtorName", min_length=1)
    doc_types: List[str] = Field(default_factory=list, alias="docTypes")
    ttl_seconds: Optional[int] = Field(None, alias="ttlSeconds", gt=0)

    @field_validator("doc_types", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []
