"""Generic record primitives shared by every repository.

Each primitive either joins the caller's session (explicit ``session=`` or
the transaction active on this thread) or runs in its own transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from docflow.db import Database
from docflow.errors import NotFoundError, QueryError, ValidationError
from docflow.models.common import DeletePolicy, delete_policy, touch, utcnow
from docflow.services.common import apply_ordering, apply_pagination, coerce_uuid

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class CrudRepository(Generic[ModelT]):
    def __init__(self, database: Database, model: type[ModelT]):
        self.database = database
        self.model = model
        self.table_name = model.__tablename__

    @contextmanager
    def _write_scope(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        active = self.database.active_session
        if active is not None:
            yield active
            return
        with self.database.transaction() as own:
            yield own

    @contextmanager
    def _read_scope(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with self.database.session() as own:
            yield own

    def _column(self, name: str):
        column = self.model.__table__.columns.get(name)
        if column is None:
            raise QueryError(f"Unknown column {name} for {self.table_name}")
        return getattr(self.model, column.key)

    def _where(self, stmt, criteria: dict[str, Any] | None):
        for key, value in (criteria or {}).items():
            if value is None:
                continue
            stmt = stmt.where(self._column(key) == value)
        return stmt

    def _primary_key(self, record_id):
        pk_type = self.model.__table__.primary_key.columns.values()[0].type
        if getattr(pk_type, "python_type", None) is int:
            try:
                return int(record_id)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid identifier: {record_id}")
        return coerce_uuid(record_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, record_id, session: Session | None = None) -> ModelT | None:
        with self._read_scope(session) as db:
            return db.get(self.model, self._primary_key(record_id))

    def find_by(
        self,
        criteria: dict[str, Any] | None = None,
        order_by: str | None = None,
        order_dir: str = "asc",
        limit: int | None = None,
        offset: int | None = None,
        session: Session | None = None,
    ) -> list[ModelT]:
        stmt = self._where(select(self.model), criteria)
        if order_by is not None:
            stmt = apply_ordering(
                stmt, order_by, order_dir, {order_by: self._column(order_by)}
            )
        stmt = apply_pagination(stmt, limit, offset)
        with self._read_scope(session) as db:
            return list(db.scalars(stmt).all())

    def find_one_by(
        self, criteria: dict[str, Any], session: Session | None = None
    ) -> ModelT | None:
        results = self.find_by(criteria, limit=1, session=session)
        return results[0] if results else None

    def find_all(self, **options) -> list[ModelT]:
        return self.find_by({}, **options)

    def count(
        self, criteria: dict[str, Any] | None = None, session: Session | None = None
    ) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), criteria)
        with self._read_scope(session) as db:
            return db.scalar(stmt) or 0

    def exists(
        self, criteria: dict[str, Any] | None = None, session: Session | None = None
    ) -> bool:
        return self.count(criteria, session=session) > 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: dict[str, Any], session: Session | None = None) -> ModelT:
        for key in data:
            self._column(key)
        with self._write_scope(session) as db:
            record = self.model(**data)
            db.add(record)
            db.flush()
            logger.debug("Created %s %s", self.table_name, record.id)
            return record

    def update_by_id(
        self, record_id, data: dict[str, Any], session: Session | None = None
    ) -> ModelT:
        for key in data:
            self._column(key)
        with self._write_scope(session) as db:
            record = db.get(self.model, self._primary_key(record_id))
            if record is None:
                raise NotFoundError(f"{self.table_name} record not found")
            for key, value in data.items():
                setattr(record, self._column(key).key, value)
            if "updated_at" in self.model.__table__.columns:
                record.updated_at = touch(record.updated_at)
            db.flush()
            return record

    def delete_by_id(self, record_id, session: Session | None = None) -> DeletePolicy:
        """Delete following the model's declared policy; returns the policy used."""
        policy = delete_policy(self.model)
        pk = self._primary_key(record_id)
        id_column = self.model.id
        if policy is DeletePolicy.soft:
            stmt = (
                update(self.model)
                .where(id_column == pk, self.model.deleted_at.is_(None))
                .values(deleted_at=utcnow())
            )
        elif policy is DeletePolicy.deactivate:
            stmt = update(self.model).where(id_column == pk).values(active=False)
        else:
            stmt = delete(self.model).where(id_column == pk)

        with self._write_scope(session) as db:
            result = db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount == 0:
                raise NotFoundError(f"{self.table_name} record not found")
        logger.info("Deleted %s %s (%s)", self.table_name, pk, policy.value)
        return policy
