from uuid import UUID

from fastapi import Header, HTTPException, Request, status

from docflow.schemas.common import Actor


def get_container(request: Request):
    return request.app.state.container


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """Caller identity as forwarded by the trusted front proxy."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Missing caller identity"},
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "invalid_uuid", "message": "Invalid X-User-Id"},
        ) from exc
    return Actor(user_id=user_id, role=x_user_role.strip())
