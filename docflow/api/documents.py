from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status

from docflow.api.deps import get_actor, get_container
from docflow.schemas.common import Actor
from docflow.schemas.document import (
    CodeAvailability,
    CommentCreate,
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
    StatusChangeRequest,
)

router = APIRouter(prefix="/documents", tags=["documents"])


# ------------------------------------------------------------------
# Collection
# ------------------------------------------------------------------


@router.post("", response_model=DocumentDetail, status_code=status.HTTP_201_CREATED)
def create_document(
    document: DocumentCreate = Body(embed=True),
    relationships: DocumentRelationships | None = Body(default=None, embed=True),
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.create_document(actor, document, relationships)


@router.get("", response_model=DocumentPage)
def list_documents(
    status_filter: str | None = Query(default=None, alias="status"),
    department: str | None = None,
    country: str | None = None,
    document_type: str | None = None,
    search: str | None = None,
    created_by: UUID | None = None,
    owned_by: UUID | None = None,
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    filters = DocumentFilters(
        status=status_filter,
        department=department,
        country=country,
        document_type=document_type,
        search=search,
        created_by=created_by,
        owned_by=owned_by,
    )
    return container.commands.list_documents(actor, filters, page, limit)


@router.get("/statistics", response_model=StatisticsRead)
def get_statistics(
    actor: Actor = Depends(get_actor), container=Depends(get_container)
):
    return container.commands.get_statistics(actor)


@router.get("/code-available", response_model=CodeAvailability)
def code_available(
    code: str = Query(min_length=1),
    exclude_id: UUID | None = None,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.is_code_unique(actor, code, exclude_id)


# ------------------------------------------------------------------
# Single document
# ------------------------------------------------------------------


@router.get("/{document_id}", response_model=DocumentDetail)
def get_document(
    document_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.get_document(actor, document_id)


@router.patch("/{document_id}", response_model=DocumentDetail)
def update_document(
    document_id: UUID,
    patch: DocumentUpdate | None = Body(default=None, embed=True),
    relationships: DocumentRelationships | None = Body(default=None, embed=True),
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.update_document(actor, document_id, patch, relationships)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: UUID,
    hard: bool = False,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    container.commands.delete_document(actor, document_id, hard=hard)


@router.post("/{document_id}/status", response_model=StatusChangeRead)
def set_status(
    document_id: UUID,
    payload: StatusChangeRequest,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.set_status(actor, document_id, payload.status)


@router.post("/{document_id}/archive", response_model=StatusChangeRead)
def archive_document(
    document_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.archive_document(actor, document_id)


# ------------------------------------------------------------------
# Comments and files
# ------------------------------------------------------------------


@router.post(
    "/{document_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    document_id: UUID,
    payload: CommentCreate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.add_comment(actor, document_id, payload.comment)


@router.post(
    "/{document_id}/files",
    response_model=DocumentFileRead,
    status_code=status.HTTP_201_CREATED,
)
def add_file(
    document_id: UUID,
    payload: DocumentFileCreate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.add_file(actor, document_id, payload)
