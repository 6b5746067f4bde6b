from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.models.enums import DocumentStatus, RelationshipKind, VERSION_PATTERN
from docflow.schemas.common import Pagination
from docflow.schemas.user import UserSummary


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentBase(BaseModel):
    name: str = Field(min_length=1, max_length=500)
    document_code: str = Field(min_length=1, max_length=100)
    document_number: str | None = Field(default=None, max_length=100)
    document_type: str = Field(min_length=1, max_length=100)
    department: str = Field(min_length=1, max_length=255)
    country: str = Field(min_length=1, max_length=255)
    description: str | None = None
    version_number: str = Field(default="1.0", pattern=VERSION_PATTERN)
    upload_date: date | None = None
    last_revision_date: date | None = None
    next_revision_date: date | None = None
    review_deadline: date | None = None
    pending_with: str | None = Field(default=None, max_length=255)
    is_breached: bool = False
    review_due: bool = False
    needs_review: bool = False
    file_url: str | None = None
    document_url: str | None = None
    file_hash: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None


class DocumentCreate(DocumentBase):
    status: str = "draft"


class DocumentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=500)
    document_code: str | None = Field(default=None, min_length=1, max_length=100)
    document_number: str | None = Field(default=None, max_length=100)
    document_type: str | None = Field(default=None, min_length=1, max_length=100)
    department: str | None = Field(default=None, min_length=1, max_length=255)
    country: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    version_number: str | None = Field(default=None, pattern=VERSION_PATTERN)
    upload_date: date | None = None
    last_revision_date: date | None = None
    next_revision_date: date | None = None
    review_deadline: date | None = None
    status: str | None = None
    pending_with: str | None = Field(default=None, max_length=255)
    is_breached: bool | None = None
    review_due: bool | None = None
    needs_review: bool | None = None
    file_url: str | None = None
    document_url: str | None = None
    file_hash: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None


class DocumentRead(DocumentBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: DocumentStatus
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


class ComplianceNameIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)


class ComplianceNameRead(ComplianceNameIn):
    model_config = ConfigDict(from_attributes=True)


class DocumentRelationships(BaseModel):
    """Relationship sets for create/update.

    On update only the kinds given here are replaced; a kind left out (or
    given as ``None``) is not touched, an empty list clears it.
    """

    owners: list[UUID] | None = None
    reviewers: list[UUID] | None = None
    creators: list[UUID] | None = None
    compliance_contacts: list[UUID] | None = None
    compliance_names: list[ComplianceNameIn] | None = None

    def user_links(self) -> dict[RelationshipKind, list[UUID]]:
        links = {}
        for kind in (
            RelationshipKind.owners,
            RelationshipKind.reviewers,
            RelationshipKind.creators,
            RelationshipKind.compliance_contacts,
        ):
            value = getattr(self, kind.value)
            if value is not None:
                links[kind] = value
        return links


# ---------------------------------------------------------------------------
# Comments and files
# ---------------------------------------------------------------------------


class CommentCreate(BaseModel):
    comment: str = Field(min_length=1)


class CommentRead(BaseModel):
    id: int
    document_id: UUID
    user_id: UUID
    user_name: str
    comment: str
    created_at: datetime


class DocumentFileCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    original_name: str = Field(min_length=1, max_length=500)
    file_path: str = Field(min_length=1, max_length=1024)
    file_size: int = Field(ge=0)
    mime_type: str = Field(min_length=1, max_length=255)
    file_hash: str | None = None
    is_s3: bool = False
    uploaded_by: UUID


class DocumentFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    file_name: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    file_hash: str | None = None
    is_s3: bool
    uploaded_by: UUID
    created_at: datetime


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class DocumentDetail(DocumentRead):
    owners: list[UserSummary] = Field(default_factory=list)
    reviewers: list[UserSummary] = Field(default_factory=list)
    creators: list[UserSummary] = Field(default_factory=list)
    compliance_contacts: list[UserSummary] = Field(default_factory=list)
    compliance_names: list[ComplianceNameRead] = Field(default_factory=list)
    comments: list[CommentRead] = Field(default_factory=list)
    files: list[DocumentFileRead] = Field(default_factory=list)


class StatusChangeRequest(BaseModel):
    status: str


class StatusChangeRead(BaseModel):
    document_id: UUID
    previous_status: DocumentStatus
    requested_status: DocumentStatus
    status: DocumentStatus
    substituted: bool
    changed_by: UUID | None = None
    document: DocumentDetail


# ---------------------------------------------------------------------------
# Listing and statistics
# ---------------------------------------------------------------------------


class DocumentFilters(BaseModel):
    status: str | None = None
    department: str | None = None
    country: str | None = None
    document_type: str | None = None
    search: str | None = None
    created_by: UUID | None = None
    owned_by: UUID | None = None


class DocumentPage(BaseModel):
    documents: list[DocumentDetail]
    pagination: Pagination


class CodeAvailability(BaseModel):
    document_code: str
    available: bool


class StatisticsRead(BaseModel):
    total_documents: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    by_department: dict[str, int]
    recent_documents: int
    pending_review: int
    pending_approval: int
    live: int
    change_requests_by_status: dict[str, int] = Field(default_factory=dict)
