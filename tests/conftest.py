"""
Shared pytest fixtures.

Every test gets its own SQLite file under ``tmp_path`` so repositories
never share state between tests.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from docflow.config import Settings
from docflow.db import Database
from docflow.main import create_app
from docflow.schemas.document import DocumentCreate, DocumentRelationships
from docflow.schemas.user import UserCreate
from docflow.services.change_requests import ChangeRequests
from docflow.services.commands import DocumentCommands
from docflow.services.documents import DocumentRepository
from docflow.services.queries import DocumentQueries
from docflow.services.statistics import DocumentStatistics
from docflow.services.users import Users
from docflow.services.workflow import WorkflowEngine


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite:///{tmp_path / 'docflow.db'}",
        log_level="WARNING",
    )


@pytest.fixture()
def database(settings):
    db = Database(settings)
    db.connect()
    db.init_schema()
    yield db
    db.close()


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture()
def workflow():
    return WorkflowEngine()


@pytest.fixture()
def documents(database, workflow):
    return DocumentRepository(database, workflow)


@pytest.fixture()
def queries(database, documents):
    return DocumentQueries(database, documents)


@pytest.fixture()
def statistics(database):
    return DocumentStatistics(database)


@pytest.fixture()
def users(database):
    return Users(database)


@pytest.fixture()
def change_requests(database):
    return ChangeRequests(database)


@pytest.fixture()
def commands(documents, queries, statistics, change_requests):
    return DocumentCommands(documents, queries, statistics, change_requests)


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture()
def make_user(users):
    def _make_user(**overrides):
        suffix = uuid.uuid4().hex[:8]
        defaults = dict(
            name=f"User {suffix}",
            email=f"user-{suffix}@example.com",
            role="document-owner",
            department="Quality",
            country="Kenya",
        )
        defaults.update(overrides)
        return users.create(UserCreate(**defaults))

    return _make_user


@pytest.fixture()
def user(make_user):
    return make_user(name="Alice Owner", email="alice@example.com")


@pytest.fixture()
def make_document(documents):
    def _make_document(relationships=None, **overrides):
        suffix = uuid.uuid4().hex[:6].upper()
        defaults = dict(
            name=f"Procedure {suffix}",
            document_code=f"SOP-{suffix}",
            document_type="SOP",
            department="Quality",
            country="Kenya",
        )
        defaults.update(overrides)
        if relationships is not None and not isinstance(
            relationships, DocumentRelationships
        ):
            relationships = DocumentRelationships(**relationships)
        return documents.create_with_relationships(
            DocumentCreate(**defaults), relationships
        )

    return _make_document


# =============================================================================
# HTTP FIXTURES
# =============================================================================


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def api_user(app):
    return app.state.container.users.create(
        UserCreate(name="Api Admin", email="admin@example.com", role="admin")
    )


@pytest.fixture()
def auth_headers(api_user):
    return {"X-User-Id": str(api_user.id), "X-User-Role": "admin"}
