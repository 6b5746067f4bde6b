from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from docflow.api.deps import get_actor, get_container
from docflow.schemas.common import Actor
from docflow.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.users.create(payload)


@router.get("", response_model=list[UserRead])
def list_users(
    role: str | None = None,
    active: bool | None = True,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.users.list(role, active, order_by, order_dir)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.users.get(user_id)


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    return container.users.update(user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: UUID,
    actor: Actor = Depends(get_actor),
    container=Depends(get_container),
):
    container.users.deactivate(user_id)
