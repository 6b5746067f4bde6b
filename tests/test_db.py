import pytest

from docflow.config import Settings
from docflow.db import Database, ExecuteResult
from docflow.errors import DuplicateError, StorageConnectionError
from docflow.models.enums import UserRole
from docflow.models.user import User


class TestConnect:
    def test_connect_is_idempotent(self, settings):
        db = Database(settings)
        first = db.connect()
        second = db.connect()
        assert first is second
        assert db.is_connected is True
        db.close()
        assert db.is_connected is False

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "docs.db"
        db = Database(Settings(database_url=f"sqlite:///{target}"))
        db.connect()
        assert target.parent.is_dir()
        db.close()

    def test_unusable_location(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        db = Database(Settings(database_url=f"sqlite:///{blocker / 'docs.db'}"))
        with pytest.raises(StorageConnectionError):
            db.connect()
        assert db.is_connected is False

    def test_engine_before_connect(self, settings):
        db = Database(settings)
        with pytest.raises(StorageConnectionError):
            db.engine

    def test_pragmas_applied(self, database):
        rows = database.execute("PRAGMA foreign_keys")
        assert list(rows[0].values())[0] == 1
        rows = database.execute("PRAGMA journal_mode")
        assert list(rows[0].values())[0].lower() == "wal"

    def test_in_memory_database(self):
        db = Database(Settings(database_url="sqlite:///:memory:"))
        db.connect()
        db.init_schema()
        assert db.health_check() is True
        db.close()


class TestHealthCheck:
    def test_healthy(self, database):
        assert database.health_check() is True

    def test_never_raises_when_closed(self, settings):
        db = Database(settings)
        assert db.health_check() is False


class TestTransaction:
    def _user(self, email="tx@example.com"):
        return User(name="Tx", email=email, role=UserRole.admin)

    def test_commit(self, database):
        with database.transaction() as session:
            session.add(self._user())
        with database.session() as session:
            assert session.query(User).count() == 1

    def test_rollback_on_error(self, database):
        with pytest.raises(ValueError):
            with database.transaction() as session:
                session.add(self._user())
                session.flush()
                raise ValueError("boom")
        with database.session() as session:
            assert session.query(User).count() == 0

    def test_integrity_error_is_translated(self, database):
        with database.transaction() as session:
            session.add(self._user("same@example.com"))
        with pytest.raises(DuplicateError):
            with database.transaction() as session:
                session.add(self._user("same@example.com"))

    def test_nested_transaction_rejected(self, database):
        with pytest.raises(RuntimeError):
            with database.transaction():
                with database.transaction():
                    pass
        assert database.active_session is None

    def test_session_joins_active_transaction(self, database):
        with database.transaction() as tx_session:
            with database.session() as session:
                assert session is tx_session


class TestExecute:
    def test_select_returns_rows(self, database):
        rows = database.execute("SELECT :value AS value", {"value": 42})
        assert rows == [{"value": 42}]

    def test_mutation_returns_counts(self, database):
        result = database.execute(
            "INSERT INTO users (id, name, email, role, active, created_at, updated_at) "
            "VALUES (:id, 'Raw', 'raw@example.com', 'admin', 1, "
            "'2024-01-01 00:00:00', '2024-01-01 00:00:00')",
            {"id": "0" * 32},
        )
        assert isinstance(result, ExecuteResult)
        assert result.rowcount == 1
