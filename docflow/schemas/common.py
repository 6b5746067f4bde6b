from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Actor(BaseModel):
    """Identity of the caller.

    Supplied by a trusted caller that has already authenticated and
    authorized the request; nothing in this package re-checks it.
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    role: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    next_page: int | None = None
    prev_page: int | None = None
