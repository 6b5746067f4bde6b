from __future__ import annotations

import logging

from sqlalchemy import select

from docflow.db import Database
from docflow.errors import NotFoundError
from docflow.models.common import touch
from docflow.models.document import ChangeRequest, Document
from docflow.models.enums import (
    OPEN_CHANGE_REQUEST_STATUSES,
    ChangeRequestStatus,
    ChangeRequestType,
    Priority,
)
from docflow.models.user import User
from docflow.schemas.change_request import ChangeRequestCreate, ChangeRequestRead
from docflow.services.common import coerce_enum, coerce_uuid
from docflow.services.crud import CrudRepository

logger = logging.getLogger(__name__)


class ChangeRequests:
    """Requests to change a document, tracked apart from the document's own status."""

    def __init__(self, database: Database):
        self.database = database
        self.crud = CrudRepository(database, ChangeRequest)

    @staticmethod
    def _base_query():
        return (
            select(ChangeRequest, Document.name, User.name)
            .join(Document, ChangeRequest.document_id == Document.id)
            .join(User, ChangeRequest.requester_id == User.id)
        )

    @staticmethod
    def _to_read(row) -> ChangeRequestRead:
        change_request, document_name, requester_name = row
        read = ChangeRequestRead.model_validate(change_request)
        return read.model_copy(
            update={"document_name": document_name, "requester_name": requester_name}
        )

    def create(self, payload: ChangeRequestCreate) -> ChangeRequestRead:
        request_type = coerce_enum(ChangeRequestType, payload.request_type, "request_type")
        priority = coerce_enum(Priority, payload.priority, "priority")

        with self.database.transaction() as session:
            if session.get(Document, payload.document_id) is None:
                raise NotFoundError("Document not found")
            if session.get(User, payload.requester_id) is None:
                raise NotFoundError("Requester not found")
            change_request = self.crud.create(
                {
                    "document_id": payload.document_id,
                    "requester_id": payload.requester_id,
                    "request_type": request_type,
                    "priority": priority,
                    "status": ChangeRequestStatus.pending,
                    "description": payload.description,
                },
                session=session,
            )
            change_request_id = change_request.id

        logger.info(
            "Created change request %s for document %s",
            change_request_id,
            payload.document_id,
        )
        return self.get(change_request_id)

    def get(self, change_request_id) -> ChangeRequestRead:
        stmt = self._base_query().where(
            ChangeRequest.id == coerce_uuid(change_request_id)
        )
        with self.database.session() as session:
            row = session.execute(stmt).first()
        if row is None:
            raise NotFoundError("Change request not found")
        return self._to_read(row)

    def list(
        self,
        status: str | None = None,
        document_id=None,
        requester_id=None,
        include_withdrawn: bool = False,
    ) -> list[ChangeRequestRead]:
        stmt = self._base_query()
        if status is not None:
            stmt = stmt.where(
                ChangeRequest.status == coerce_enum(ChangeRequestStatus, status, "status")
            )
        if document_id is not None:
            stmt = stmt.where(ChangeRequest.document_id == coerce_uuid(document_id))
        if requester_id is not None:
            stmt = stmt.where(ChangeRequest.requester_id == coerce_uuid(requester_id))
        if not include_withdrawn:
            stmt = stmt.where(ChangeRequest.deleted_at.is_(None))
        stmt = stmt.order_by(ChangeRequest.created_at.desc())
        with self.database.session() as session:
            return [self._to_read(row) for row in session.execute(stmt).all()]

    def open_for_document(self, document_id) -> list[ChangeRequestRead]:
        return [
            cr
            for cr in self.list(document_id=document_id)
            if cr.status in OPEN_CHANGE_REQUEST_STATUSES
        ]

    def update_status(self, change_request_id, status) -> ChangeRequestRead:
        new_status = coerce_enum(ChangeRequestStatus, status, "status")
        with self.database.transaction() as session:
            change_request = session.get(ChangeRequest, coerce_uuid(change_request_id))
            if change_request is None or change_request.deleted_at is not None:
                raise NotFoundError("Change request not found")
            previous = change_request.status
            change_request.status = new_status
            change_request.updated_at = touch(change_request.updated_at)

        logger.info(
            "Change request %s status %s -> %s",
            change_request_id,
            previous.value,
            new_status.value,
        )
        return self.get(change_request_id)

    def withdraw(self, change_request_id) -> None:
        self.crud.delete_by_id(change_request_id)
