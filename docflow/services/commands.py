"""Caller-facing command surface.

Every command takes the acting user's identity. The identity is trusted:
deciding *who may call* a command is the caller's job (route handler,
external service). These functions only enforce *what the data allows*.
"""

import logging

from docflow.errors import NotFoundError
from docflow.models.enums import DocumentStatus, OPEN_CHANGE_REQUEST_STATUSES
from docflow.schemas.change_request import ChangeRequestCreate, ChangeRequestRead
from docflow.schemas.common import Actor
from docflow.schemas.document import (
    CodeAvailability,
    CommentRead,
    DocumentCreate,
    DocumentDetail,
    DocumentFileCreate,
    DocumentFileRead,
    DocumentFilters,
    DocumentPage,
    DocumentRelationships,
    DocumentUpdate,
    StatisticsRead,
    StatusChangeRead,
)
from docflow.services.change_requests import ChangeRequests
from docflow.services.documents import DocumentRepository
from docflow.services.queries import DocumentQueries
from docflow.services.statistics import DocumentStatistics

logger = logging.getLogger(__name__)


class DocumentCommands:
    def __init__(
        self,
        documents: DocumentRepository,
        queries: DocumentQueries,
        statistics: DocumentStatistics,
        change_requests: ChangeRequests,
    ):
        self.documents = documents
        self.queries = queries
        self.statistics = statistics
        self.change_requests = change_requests

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(
        self,
        actor: Actor,
        payload: DocumentCreate,
        relationships: DocumentRelationships | None = None,
    ) -> DocumentDetail:
        document = self.documents.create_with_relationships(payload, relationships)
        logger.info("User %s created document %s", actor.user_id, document.id)
        return document

    def get_document(self, actor: Actor, document_id) -> DocumentDetail:
        document = self.documents.get_with_relationships(document_id)
        if document is None:
            raise NotFoundError("Document not found", {"document_id": str(document_id)})
        return document

    def update_document(
        self,
        actor: Actor,
        document_id,
        patch: DocumentUpdate | None = None,
        relationships: DocumentRelationships | None = None,
    ) -> DocumentDetail:
        document = self.documents.update_with_relationships(
            document_id, patch, relationships
        )
        logger.info("User %s updated document %s", actor.user_id, document.id)
        return document

    def set_status(self, actor: Actor, document_id, status) -> StatusChangeRead:
        return self.documents.update_status(document_id, status, actor.user_id)

    def add_comment(self, actor: Actor, document_id, text: str) -> CommentRead:
        return self.documents.add_comment(document_id, actor.user_id, text)

    def add_file(
        self, actor: Actor, document_id, payload: DocumentFileCreate
    ) -> DocumentFileRead:
        return self.documents.add_file(document_id, payload)

    def list_documents(
        self,
        actor: Actor,
        filters: DocumentFilters | None = None,
        page=1,
        limit=None,
    ) -> DocumentPage:
        return self.queries.by_user_role(actor.user_id, actor.role, filters, page, limit)

    def get_statistics(self, actor: Actor) -> StatisticsRead:
        return self.statistics.collect()

    def is_code_unique(self, actor: Actor, document_code: str, exclude_id=None) -> CodeAvailability:
        return CodeAvailability(
            document_code=document_code,
            available=self.documents.is_code_unique(document_code, exclude_id),
        )

    def archive_document(self, actor: Actor, document_id) -> StatusChangeRead:
        return self.documents.archive(document_id, actor.user_id)

    def delete_document(self, actor: Actor, document_id, hard: bool = False):
        if hard:
            self.documents.delete(document_id)
            logger.info("User %s hard-deleted document %s", actor.user_id, document_id)
            return None
        return self.documents.soft_delete(document_id, actor.user_id)

    # ------------------------------------------------------------------
    # Change requests
    # ------------------------------------------------------------------

    def open_change_request(
        self, actor: Actor, payload: ChangeRequestCreate
    ) -> ChangeRequestRead:
        """Record a change request and put a live document under change (live-cr)."""
        change_request = self.change_requests.create(payload)
        document = self.documents.get(payload.document_id)
        if document.status is DocumentStatus.live:
            self.documents.update_status(
                payload.document_id, DocumentStatus.under_review, actor.user_id
            )
        return change_request

    def resolve_change_request(
        self, actor: Actor, change_request_id, status
    ) -> ChangeRequestRead:
        """Update a change request; once none is open, a live-cr document goes back to live."""
        change_request = self.change_requests.update_status(change_request_id, status)
        if change_request.status not in OPEN_CHANGE_REQUEST_STATUSES:
            self._restore_live(actor, change_request.document_id)
        return change_request

    def withdraw_change_request(self, actor: Actor, change_request_id) -> None:
        """Withdraw a change request, restoring a live-cr document when it was the last open one."""
        change_request = self.change_requests.get(change_request_id)
        self.change_requests.withdraw(change_request_id)
        logger.info(
            "User %s withdrew change request %s", actor.user_id, change_request_id
        )
        self._restore_live(actor, change_request.document_id)

    def _restore_live(self, actor: Actor, document_id) -> None:
        document = self.documents.get(document_id)
        if document.status is not DocumentStatus.live_cr:
            return
        if not self.change_requests.open_for_document(document_id):
            self.documents.update_status(document_id, DocumentStatus.live, actor.user_id)
