from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from docflow.api.deps import get_actor, get_container
from docflow.schemas.change_request import (
    ChangeRequestCreate,
    ChangeRequestRead,
    ChangeRequestStatusUpdate,
)
from docflow.schemas.common import Actor

router = APIRouter(prefix="/change-requests", tags=["change-requests"])


@router.post("", response_model=ChangeRequestRead, status_code=status.HTTP_201_CREATED)
def create_change_request(
    payload: ChangeRequestCreate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.open_change_request(actor, payload)


@router.get("", response_model=list[ChangeRequestRead])
def list_change_requests(
    status_filter: str | None = Query(default=None, alias="status"),
    document_id: UUID | None = None,
    requester_id: UUID | None = None,
    include_withdrawn: bool = False,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.change_requests.list(
        status_filter, document_id, requester_id, include_withdrawn
    )


@router.get("/{change_request_id}", response_model=ChangeRequestRead)
def get_change_request(
    change_request_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.change_requests.get(change_request_id)


@router.put("/{change_request_id}/status", response_model=ChangeRequestRead)
def update_change_request_status(
    change_request_id: UUID,
    payload: ChangeRequestStatusUpdate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.commands.resolve_change_request(
        actor, change_request_id, payload.status
    )


@router.delete("/{change_request_id}", status_code=status.HTTP_204_NO_CONTENT)
def withdraw_change_request(
    change_request_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    container.commands.withdraw_change_request(actor, change_request_id)
