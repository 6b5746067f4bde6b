import logging

from sqlalchemy import func, or_, select

from docflow.db import Database
from docflow.models.document import Document, DocumentCreator, DocumentOwner, DocumentReviewer
from docflow.models.enums import DocumentStatus, UserRole
from docflow.schemas.common import Pagination
from docflow.schemas.document import DocumentFilters, DocumentPage
from docflow.services.common import (
    coerce_enum,
    coerce_uuid,
    escape_like,
    normalize_page,
    pagination_info,
)
from docflow.services.documents import DocumentRepository

logger = logging.getLogger(__name__)

# Roles whose listing is narrowed to documents they are attached to.
ROLE_SCOPES = {
    UserRole.document_owner: DocumentOwner,
    UserRole.document_creator: DocumentCreator,
    UserRole.reviewer: DocumentReviewer,
}


class DocumentQueries:
    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        default_limit: int = 20,
        max_limit: int = 100,
    ):
        self.database = database
        self.documents = documents
        self.default_limit = default_limit
        self.max_limit = max_limit

    @staticmethod
    def apply_filters(stmt, filters: DocumentFilters | None):
        if filters is None:
            return stmt
        if filters.status:
            stmt = stmt.where(
                Document.status == coerce_enum(DocumentStatus, filters.status, "status")
            )
        if filters.department:
            stmt = stmt.where(Document.department == filters.department)
        if filters.country:
            stmt = stmt.where(Document.country == filters.country)
        if filters.document_type:
            stmt = stmt.where(Document.document_type == filters.document_type)
        if filters.search:
            pattern = f"%{escape_like(filters.search)}%"
            stmt = stmt.where(
                or_(
                    Document.name.ilike(pattern, escape="\\"),
                    Document.document_code.ilike(pattern, escape="\\"),
                    Document.description.ilike(pattern, escape="\\"),
                )
            )
        # EXISTS keeps one row per document however many creators/owners it has.
        if filters.created_by is not None:
            stmt = stmt.where(
                select(DocumentCreator.id)
                .where(DocumentCreator.document_id == Document.id)
                .where(DocumentCreator.user_id == coerce_uuid(filters.created_by))
                .exists()
            )
        if filters.owned_by is not None:
            stmt = stmt.where(
                select(DocumentOwner.id)
                .where(DocumentOwner.document_id == Document.id)
                .where(DocumentOwner.user_id == coerce_uuid(filters.owned_by))
                .exists()
            )
        return stmt

    def _page(self, stmt, page, limit) -> DocumentPage:
        page, limit, offset = normalize_page(
            page, limit, default_limit=self.default_limit, max_limit=self.max_limit
        )
        count_stmt = select(func.count()).select_from(stmt.subquery())
        stmt = (
            stmt.order_by(Document.created_at.desc(), Document.id)
            .limit(limit)
            .offset(offset)
        )
        with self.database.session() as session:
            total = session.scalar(count_stmt) or 0
            documents = [
                self.documents.hydrate(session, document)
                for document in session.scalars(stmt).all()
            ]
        return DocumentPage(
            documents=documents,
            pagination=Pagination(**pagination_info(total, page, limit)),
        )

    def list_documents(
        self, filters: DocumentFilters | None = None, page=1, limit=None
    ) -> DocumentPage:
        stmt = self.apply_filters(select(Document), filters)
        return self._page(stmt, page, limit)

    def by_user_role(
        self,
        user_id,
        role,
        filters: DocumentFilters | None = None,
        page=1,
        limit=None,
    ) -> DocumentPage:
        """Listing as seen by a role.

        Owners, creators and reviewers only see documents they are attached
        to; every other role sees the whole filtered set. This is a view
        policy, not an authorization check.
        """
        role = coerce_enum(UserRole, role, "role")
        stmt = select(Document)
        link_model = ROLE_SCOPES.get(role)
        if link_model is not None:
            stmt = stmt.join(link_model, link_model.document_id == Document.id).where(
                link_model.user_id == coerce_uuid(user_id)
            )
        stmt = self.apply_filters(stmt, filters)
        return self._page(stmt, page, limit)
