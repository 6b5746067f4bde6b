from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docflow.config import Settings
from docflow.errors import DocflowError, StorageConnectionError, translate_db_error

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


@dataclass(frozen=True)
class ExecuteResult:
    rowcount: int
    lastrowid: Any = None


def _is_memory_database(url: URL) -> bool:
    return url.database in (None, "", ":memory:") or "mode=memory" in str(url)


class Database:
    """Storage gateway: one engine, its pragmas, and transaction scoping.

    Constructed by the composition root and handed to every repository;
    there is no module-level instance. Transactions are flat: opening a
    second one on the same thread while one is active is a programming
    error.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None
        self._local = threading.local()
        self._connect_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageConnectionError("Database not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> Engine:
        with self._connect_lock:
            if self._engine is not None:
                return self._engine

            try:
                url = make_url(self.settings.database_url)
            except ArgumentError as exc:
                raise StorageConnectionError(
                    "Invalid database URL", {"reason": str(exc)}
                ) from exc

            is_sqlite = url.get_backend_name() == "sqlite"
            engine_kwargs: dict[str, Any] = {
                "echo": self.settings.db_echo,
                "pool_pre_ping": True,
            }
            if is_sqlite:
                self._prepare_sqlite_location(url)
                engine_kwargs["connect_args"] = {
                    "timeout": self.settings.db_timeout,
                    "check_same_thread": False,
                }
                if _is_memory_database(url):
                    engine_kwargs["poolclass"] = StaticPool
            else:
                engine_kwargs.update(
                    {
                        "pool_recycle": 1800,
                        "pool_size": 5,
                        "max_overflow": 10,
                        "pool_timeout": self.settings.db_timeout,
                    }
                )

            try:
                engine = create_engine(url, **engine_kwargs)
            except (ArgumentError, ImportError) as exc:
                raise StorageConnectionError(
                    "Failed to create database engine", {"reason": str(exc)}
                ) from exc

            if is_sqlite:
                event.listen(engine, "connect", self._configure_sqlite_connection)

            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                engine.dispose()
                logger.error("Database connection failed: %s", exc.__class__.__name__)
                raise StorageConnectionError(
                    "Failed to connect to database",
                    {"reason": translate_db_error(exc).details.get("reason")},
                ) from exc

            self._engine = engine
            self._sessionmaker = sessionmaker(
                bind=engine,
                class_=Session,
                autoflush=False,
                expire_on_commit=False,
            )
            logger.info("Database connected (%s)", url.get_backend_name())
            return engine

    def _prepare_sqlite_location(self, url: URL) -> None:
        if _is_memory_database(url) or str(url.database).startswith("file:"):
            return
        path = Path(url.database)
        directory = path.parent if str(path.parent) else Path(".")
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageConnectionError(
                "Database directory cannot be created", {"path": str(directory)}
            ) from exc
        if not os.access(directory, os.W_OK):
            raise StorageConnectionError(
                "Database directory is not writable", {"path": str(directory)}
            )
        if path.exists() and not os.access(path, os.W_OK):
            raise StorageConnectionError(
                "Database file is not writable", {"path": str(path)}
            )

    def _configure_sqlite_connection(self, dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            if self.settings.db_foreign_keys:
                cursor.execute("PRAGMA foreign_keys = ON")
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute("PRAGMA synchronous = NORMAL")
            cursor.execute(f"PRAGMA cache_size = -{int(self.settings.db_cache_size_kb)}")
            cursor.execute("PRAGMA temp_store = MEMORY")
            cursor.execute(f"PRAGMA busy_timeout = {int(self.settings.db_timeout * 1000)}")
        finally:
            cursor.close()

    def init_schema(self) -> None:
        import docflow.models  # noqa: F401  registers every table on Base

        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise translate_db_error(exc, "Failed to create schema") from exc

    def close(self) -> None:
        with self._connect_lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
                self._sessionmaker = None
                logger.info("Database connection closed")

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar() == 1
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Sessions and transactions
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> Session | None:
        return getattr(self._local, "session", None)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run the body as one atomic unit; any exception rolls it back."""
        if self.active_session is not None:
            raise RuntimeError("Nested transactions are not supported")
        if self._sessionmaker is None:
            raise StorageConnectionError("Database not connected")

        session = self._sessionmaker()
        self._local.session = session
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise translate_db_error(exc) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read scope. Inside a transaction this is the transaction's session."""
        current = self.active_session
        if current is not None:
            yield current
            return
        if self._sessionmaker is None:
            raise StorageConnectionError("Database not connected")

        session = self._sessionmaker()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise translate_db_error(exc) from exc
        finally:
            session.close()

    def execute(self, query: str, params: dict[str, Any] | None = None):
        """Run raw SQL with named ``:param`` placeholders.

        Returns a list of row dicts for statements that produce rows,
        otherwise an ``ExecuteResult`` carrying the mutation count and the
        generated row id.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), params or {})
                if result.returns_rows:
                    return [dict(row) for row in result.mappings().all()]
                return ExecuteResult(
                    rowcount=result.rowcount,
                    lastrowid=getattr(result, "lastrowid", None),
                )
        except DocflowError:
            raise
        except SQLAlchemyError as exc:
            raise translate_db_error(exc) from exc
