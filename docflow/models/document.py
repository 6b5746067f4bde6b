import uuid
from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from docflow.db import Base
from docflow.models.common import HardDeletable, SoftDeletable, enum_type, utcnow
from docflow.models.enums import (
    ChangeRequestStatus,
    ChangeRequestType,
    DocumentStatus,
    Priority,
    RelationshipKind,
)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(HardDeletable, Base):
    __tablename__ = "documents"
    __table_args__ = (
        # Codes of soft-deleted documents may be reused.
        Index(
            "uq_documents_document_code_active",
            "document_code",
            unique=True,
            sqlite_where=text("status != 'deleted'"),
            postgresql_where=text("status <> 'deleted'"),
        ),
        Index("ix_documents_status", "status"),
        Index("ix_documents_department", "department"),
        Index("ix_documents_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    document_code: Mapped[str] = mapped_column(String(100), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(100))
    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    version_number: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")

    upload_date: Mapped[date | None] = mapped_column(Date)
    last_revision_date: Mapped[date | None] = mapped_column(Date)
    next_revision_date: Mapped[date | None] = mapped_column(Date)
    review_deadline: Mapped[date | None] = mapped_column(Date)

    status: Mapped[DocumentStatus] = mapped_column(
        enum_type(DocumentStatus, "document_status"),
        nullable=False,
        default=DocumentStatus.draft,
    )
    pending_with: Mapped[str | None] = mapped_column(String(255))
    is_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_due: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # File metadata only; the binary lives in external storage.
    file_url: Mapped[str | None] = mapped_column(String(1024))
    document_url: Mapped[str | None] = mapped_column(String(1024))
    file_hash: Mapped[str | None] = mapped_column(String(128))
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    mime_type: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ---------------------------------------------------------------------------
# Relationship tables
# ---------------------------------------------------------------------------


class _DocumentUserLink(HardDeletable):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


class DocumentOwner(_DocumentUserLink, Base):
    __tablename__ = "document_owners"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_owners_pair"),
        Index("ix_document_owners_user_id", "user_id"),
    )


class DocumentReviewer(_DocumentUserLink, Base):
    __tablename__ = "document_reviewers"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_reviewers_pair"),
        Index("ix_document_reviewers_user_id", "user_id"),
    )


class DocumentCreator(_DocumentUserLink, Base):
    __tablename__ = "document_creators"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_creators_pair"),
        Index("ix_document_creators_user_id", "user_id"),
    )


class ComplianceContact(_DocumentUserLink, Base):
    __tablename__ = "compliance_contacts"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_compliance_contacts_pair"),
        Index("ix_compliance_contacts_user_id", "user_id"),
    )


class ComplianceName(HardDeletable, Base):
    """External compliance stakeholder without a user record."""

    __tablename__ = "compliance_names"
    __table_args__ = (Index("ix_compliance_names_document_id", "document_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))


USER_LINK_MODELS = {
    RelationshipKind.owners: DocumentOwner,
    RelationshipKind.reviewers: DocumentReviewer,
    RelationshipKind.creators: DocumentCreator,
    RelationshipKind.compliance_contacts: ComplianceContact,
}


# ---------------------------------------------------------------------------
# Comments and files
# ---------------------------------------------------------------------------


class DocumentComment(HardDeletable, Base):
    __tablename__ = "document_comments"
    __table_args__ = (Index("ix_document_comments_document_id", "document_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class DocumentFile(HardDeletable, Base):
    __tablename__ = "document_files"
    __table_args__ = (Index("ix_document_files_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_hash: Mapped[str | None] = mapped_column(String(128))
    is_s3: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ---------------------------------------------------------------------------
# Change requests
# ---------------------------------------------------------------------------


class ChangeRequest(SoftDeletable, Base):
    __tablename__ = "change_requests"
    __table_args__ = (
        Index("ix_change_requests_document_id", "document_id"),
        Index("ix_change_requests_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    request_type: Mapped[ChangeRequestType] = mapped_column(
        enum_type(ChangeRequestType, "change_request_type"), nullable=False
    )
    status: Mapped[ChangeRequestStatus] = mapped_column(
        enum_type(ChangeRequestStatus, "change_request_status"),
        nullable=False,
        default=ChangeRequestStatus.pending,
    )
    priority: Mapped[Priority] = mapped_column(
        enum_type(Priority, "change_request_priority"),
        nullable=False,
        default=Priority.medium,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
