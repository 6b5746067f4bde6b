from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from docflow.db import Database
from docflow.errors import ConstraintError, DuplicateError, NotFoundError, ValidationError
from docflow.models.common import touch
from docflow.models.document import (
    USER_LINK_MODELS,
    ComplianceName,
    Document,
    DocumentComment,
    DocumentFile,
)
from docflow.models.enums import INITIAL_STATUSES, DocumentStatus, RelationshipKind
from docflow.models.user import User
from docflow.schemas.document import (
    CommentRead,
    ComplianceNameIn,
    ComplianceNameRead,
    DocumentCreate,
    DocumentDetail,
    DocumentFileCreate,
    DocumentFileRead,
    DocumentRead,
    DocumentRelationships,
    DocumentUpdate,
    StatusChangeRead,
)
from docflow.schemas.user import UserSummary
from docflow.services.common import coerce_enum, coerce_uuid
from docflow.services.crud import CrudRepository
from docflow.services.workflow import StatusChange, WorkflowEngine

logger = logging.getLogger(__name__)

# Columns a patch may change but never set to null.
_NON_NULLABLE_FIELDS = (
    "name",
    "document_code",
    "document_type",
    "department",
    "country",
    "version_number",
    "is_breached",
    "review_due",
    "needs_review",
)


def _validate_status(status) -> DocumentStatus:
    return coerce_enum(DocumentStatus, status, "status")


def _validate_patch(data: dict) -> None:
    nulled = sorted(key for key in _NON_NULLABLE_FIELDS if key in data and data[key] is None)
    if nulled:
        raise ValidationError(
            f"Fields cannot be cleared: {', '.join(nulled)}", {"fields": nulled}
        )


def _unique(values: Iterable) -> list:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class DocumentRepository:
    """The document aggregate: the row, its relationship sets, comments and files.

    Every write runs in a single transaction of the injected ``Database``.
    Callers are trusted: authorization happens before these methods are
    called, and notifications or audit entries are the caller's job.
    """

    def __init__(self, database: Database, workflow: WorkflowEngine | None = None):
        self.database = database
        self.workflow = workflow or WorkflowEngine()
        self.crud = CrudRepository(database, Document)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, document_id) -> Document:
        document = self.crud.find_by_id(document_id)
        if document is None:
            raise NotFoundError("Document not found", {"document_id": str(document_id)})
        return document

    def get_with_relationships(self, document_id) -> DocumentDetail | None:
        with self.database.session() as session:
            document = session.get(Document, coerce_uuid(document_id))
            if document is None:
                return None
            return self.hydrate(session, document)

    def hydrate(self, session: Session, document: Document) -> DocumentDetail:
        data = DocumentRead.model_validate(document).model_dump()
        linked = {
            kind.value: self._linked_users(session, model, document.id)
            for kind, model in USER_LINK_MODELS.items()
        }
        compliance_names = session.scalars(
            select(ComplianceName)
            .where(ComplianceName.document_id == document.id)
            .order_by(ComplianceName.id)
        ).all()
        files = session.scalars(
            select(DocumentFile)
            .where(DocumentFile.document_id == document.id)
            .order_by(DocumentFile.created_at.desc())
        ).all()
        return DocumentDetail(
            **data,
            **linked,
            compliance_names=[ComplianceNameRead.model_validate(c) for c in compliance_names],
            comments=self._comments(session, document.id),
            files=[DocumentFileRead.model_validate(f) for f in files],
        )

    @staticmethod
    def _linked_users(session: Session, link_model, document_id) -> list[UserSummary]:
        stmt = (
            select(User)
            .join(link_model, link_model.user_id == User.id)
            .where(link_model.document_id == document_id)
            .where(User.active.is_(True))
            .order_by(link_model.id)
        )
        return [UserSummary.model_validate(user) for user in session.scalars(stmt)]

    @staticmethod
    def _comments(session: Session, document_id, comment_id=None) -> list[CommentRead]:
        stmt = (
            select(DocumentComment, User.name)
            .join(User, DocumentComment.user_id == User.id)
            .where(DocumentComment.document_id == document_id)
        )
        if comment_id is not None:
            stmt = stmt.where(DocumentComment.id == comment_id)
        stmt = stmt.order_by(DocumentComment.created_at.desc(), DocumentComment.id.desc())
        return [
            CommentRead(
                id=comment.id,
                document_id=comment.document_id,
                user_id=comment.user_id,
                user_name=user_name,
                comment=comment.comment,
                created_at=comment.created_at,
            )
            for comment, user_name in session.execute(stmt).all()
        ]

    def is_code_unique(self, document_code: str, exclude_id=None) -> bool:
        with self.database.session() as session:
            return self._code_available(session, document_code, exclude_id)

    @staticmethod
    def _code_available(session: Session, document_code: str, exclude_id=None) -> bool:
        stmt = (
            select(func.count())
            .select_from(Document)
            .where(Document.document_code == document_code)
            .where(Document.status != DocumentStatus.deleted)
        )
        if exclude_id is not None:
            stmt = stmt.where(Document.id != coerce_uuid(exclude_id))
        return (session.scalar(stmt) or 0) == 0

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create_with_relationships(
        self,
        payload: DocumentCreate,
        relationships: DocumentRelationships | None = None,
    ) -> DocumentDetail:
        status = _validate_status(payload.status)
        if status not in INITIAL_STATUSES:
            raise ValidationError(
                f"Documents start as draft or under-review, not {status.value}",
                {"allowed": sorted(s.value for s in INITIAL_STATUSES)},
            )
        data = payload.model_dump()
        data["status"] = status

        with self.database.transaction() as session:
            if not self._code_available(session, payload.document_code):
                raise DuplicateError(
                    f"Document code {payload.document_code} already exists",
                    {"document_code": payload.document_code},
                )
            document = Document(**data)
            session.add(document)
            session.flush()
            if relationships is not None:
                self._apply_relationships(session, document.id, relationships)
            document_id = document.id

        logger.info("Created document %s (%s)", document_id, payload.document_code)
        return self.get_with_relationships(document_id)

    def update_with_relationships(
        self,
        document_id,
        patch: DocumentUpdate | None = None,
        relationships: DocumentRelationships | None = None,
    ) -> DocumentDetail:
        data = patch.model_dump(exclude_unset=True) if patch is not None else {}
        requested_status = data.pop("status", None)
        _validate_patch(data)

        with self.database.transaction() as session:
            document = session.get(Document, coerce_uuid(document_id))
            if document is None:
                raise NotFoundError("Document not found", {"document_id": str(document_id)})

            new_code = data.get("document_code")
            if new_code is not None and new_code != document.document_code:
                if not self._code_available(session, new_code, exclude_id=document.id):
                    raise DuplicateError(
                        f"Document code {new_code} already exists",
                        {"document_code": new_code},
                    )

            for key, value in data.items():
                setattr(document, key, value)

            if requested_status is not None:
                change = self.workflow.apply(document, _validate_status(requested_status))
                if change.changed and "pending_with" not in data:
                    document.pending_with = None

            if relationships is not None:
                self._apply_relationships(session, document.id, relationships)

            document.updated_at = touch(document.updated_at)
            session.flush()
            document_id = document.id

        logger.info("Updated document %s (fields: %s)", document_id, sorted(data))
        return self.get_with_relationships(document_id)

    # ------------------------------------------------------------------
    # Relationship sets
    # ------------------------------------------------------------------

    def _apply_relationships(
        self, session: Session, document_id, relationships: DocumentRelationships
    ) -> None:
        for kind, user_ids in relationships.user_links().items():
            self.replace_relationship(session, document_id, kind, user_ids)
        if relationships.compliance_names is not None:
            self.replace_relationship(
                session,
                document_id,
                RelationshipKind.compliance_names,
                relationships.compliance_names,
            )

    def replace_relationship(
        self, session: Session, document_id, kind: RelationshipKind, new_set
    ) -> None:
        """Delete every row of ``kind`` for the document, then insert ``new_set``."""
        kind = coerce_enum(RelationshipKind, kind, "relationship")
        if kind is RelationshipKind.compliance_names:
            self._replace_compliance_names(session, document_id, new_set)
            return

        link_model = USER_LINK_MODELS[kind]
        user_ids = _unique(coerce_uuid(value) for value in new_set)
        session.execute(delete(link_model).where(link_model.document_id == document_id))

        if user_ids:
            found = set(session.scalars(select(User.id).where(User.id.in_(user_ids))))
            missing = [str(uid) for uid in user_ids if uid not in found]
            if missing:
                raise ConstraintError(
                    f"Unknown users for {kind.value}", {"user_ids": missing}
                )
        for user_id in user_ids:
            session.add(link_model(document_id=document_id, user_id=user_id))
        session.flush()

    @staticmethod
    def _replace_compliance_names(
        session: Session, document_id, names: list[ComplianceNameIn]
    ) -> None:
        session.execute(
            delete(ComplianceName).where(ComplianceName.document_id == document_id)
        )
        entries = _unique(
            (entry.name, entry.email)
            for entry in (ComplianceNameIn.model_validate(n) for n in names)
        )
        for name, email in entries:
            session.add(ComplianceName(document_id=document_id, name=name, email=email))
        session.flush()

    # ------------------------------------------------------------------
    # Comments and files
    # ------------------------------------------------------------------

    def add_comment(self, document_id, user_id, text: str) -> CommentRead:
        if not text or not text.strip():
            raise ValidationError("Comment text is required")

        with self.database.transaction() as session:
            document = session.get(Document, coerce_uuid(document_id))
            if document is None:
                raise ConstraintError(
                    "Comment references an unknown document",
                    {"document_id": str(document_id)},
                )
            if session.get(User, coerce_uuid(user_id)) is None:
                raise ConstraintError(
                    "Comment references an unknown user", {"user_id": str(user_id)}
                )
            comment = DocumentComment(
                document_id=document.id, user_id=coerce_uuid(user_id), comment=text
            )
            session.add(comment)
            document.updated_at = touch(document.updated_at)
            session.flush()
            created = self._comments(session, document.id, comment_id=comment.id)[0]

        logger.info("Added comment %s to document %s", created.id, created.document_id)
        return created

    def add_file(
        self, document_id, payload: DocumentFileCreate, sync_document: bool = True
    ) -> DocumentFileRead:
        """Record metadata of a stored file; the upload itself happened elsewhere."""
        with self.database.transaction() as session:
            document = session.get(Document, coerce_uuid(document_id))
            if document is None:
                raise ConstraintError(
                    "File references an unknown document",
                    {"document_id": str(document_id)},
                )
            if session.get(User, payload.uploaded_by) is None:
                raise ConstraintError(
                    "File references an unknown uploader",
                    {"uploaded_by": str(payload.uploaded_by)},
                )
            record = DocumentFile(document_id=document.id, **payload.model_dump())
            session.add(record)
            if sync_document:
                document.file_url = payload.file_path
                document.file_hash = payload.file_hash
                document.file_size = payload.file_size
                document.mime_type = payload.mime_type
            document.updated_at = touch(document.updated_at)
            session.flush()
            result = DocumentFileRead.model_validate(record)

        logger.info("Recorded file %s for document %s", result.id, result.document_id)
        return result

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_status(self, document_id, new_status, actor_id=None) -> StatusChangeRead:
        requested = _validate_status(new_status)
        actor_id = coerce_uuid(actor_id)
        with self.database.transaction() as session:
            change: StatusChange = self.workflow.transition(session, document_id, requested)
            document = session.get(Document, change.document_id)
            # Whoever holds the ball next has to be assigned explicitly.
            document.pending_with = None
            document.updated_at = touch(document.updated_at)
            session.flush()

        logger.info(
            "Document %s status %s -> %s (requested %s) by %s",
            change.document_id,
            change.previous.value,
            change.applied.value,
            change.requested.value,
            actor_id,
        )
        return StatusChangeRead(
            document_id=change.document_id,
            previous_status=change.previous,
            requested_status=change.requested,
            status=change.applied,
            substituted=change.substituted,
            changed_by=actor_id,
            document=self.get_with_relationships(change.document_id),
        )

    def archive(self, document_id, actor_id=None) -> StatusChangeRead:
        return self.update_status(document_id, DocumentStatus.archived, actor_id)

    def soft_delete(self, document_id, actor_id=None) -> StatusChangeRead:
        return self.update_status(document_id, DocumentStatus.deleted, actor_id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, document_id) -> None:
        """Remove the row; the database cascades to every dependent row."""
        self.crud.delete_by_id(document_id)
        logger.info("Deleted document %s", document_id)
