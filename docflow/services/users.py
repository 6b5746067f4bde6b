from __future__ import annotations

import logging

from sqlalchemy import select

from docflow.db import Database
from docflow.errors import DuplicateError, NotFoundError
from docflow.models.enums import UserRole
from docflow.models.user import User
from docflow.schemas.user import UserCreate, UserRead, UserUpdate
from docflow.services.common import apply_ordering, coerce_enum
from docflow.services.crud import CrudRepository

logger = logging.getLogger(__name__)


class Users:
    """Users referenced by document relationships. Never hard-deleted."""

    def __init__(self, database: Database):
        self.database = database
        self.crud = CrudRepository(database, User)

    def create(self, payload: UserCreate) -> UserRead:
        data = payload.model_dump()
        data["role"] = coerce_enum(UserRole, data["role"], "role")
        data["email"] = data["email"].strip().lower()
        with self.database.transaction() as session:
            if self.crud.exists({"email": data["email"]}, session=session):
                raise DuplicateError(
                    f"User with email {data['email']} already exists",
                    {"email": data["email"]},
                )
            user = self.crud.create(data, session=session)
            result = UserRead.model_validate(user)
        logger.info("Created user %s", result.id)
        return result

    def get(self, user_id) -> UserRead:
        user = self.crud.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)

    def get_by_email(self, email: str) -> UserRead | None:
        user = self.crud.find_one_by({"email": email.strip().lower()})
        return UserRead.model_validate(user) if user is not None else None

    def list(
        self,
        role: str | None = None,
        active: bool | None = True,
        order_by: str = "name",
        order_dir: str = "asc",
    ) -> list[UserRead]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == coerce_enum(UserRole, role, "role"))
        if active is not None:
            stmt = stmt.where(User.active == active)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"name": User.name, "email": User.email, "created_at": User.created_at},
        )
        with self.database.session() as session:
            return [UserRead.model_validate(u) for u in session.scalars(stmt).all()]

    def update(self, user_id, payload: UserUpdate) -> UserRead:
        data = payload.model_dump(exclude_unset=True)
        if "role" in data and data["role"] is not None:
            data["role"] = coerce_enum(UserRole, data["role"], "role")
        if data.get("email"):
            data["email"] = data["email"].strip().lower()
        with self.database.transaction() as session:
            user = self.crud.update_by_id(user_id, data, session=session)
            result = UserRead.model_validate(user)
        logger.info("Updated user %s", result.id)
        return result

    def deactivate(self, user_id) -> None:
        self.crud.delete_by_id(user_id)
