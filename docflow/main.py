from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from docflow.api.change_requests import router as change_requests_router
from docflow.api.documents import router as documents_router
from docflow.api.users import router as users_router
from docflow.config import Settings, settings as default_settings
from docflow.db import Database
from docflow.errors import register_error_handlers
from docflow.logging import configure_logging
from docflow.services.change_requests import ChangeRequests
from docflow.services.commands import DocumentCommands
from docflow.services.documents import DocumentRepository
from docflow.services.queries import DocumentQueries
from docflow.services.statistics import DocumentStatistics
from docflow.services.users import Users
from docflow.services.workflow import WorkflowEngine


@dataclass
class Container:
    database: Database
    workflow: WorkflowEngine
    documents: DocumentRepository
    queries: DocumentQueries
    statistics: DocumentStatistics
    change_requests: ChangeRequests
    users: Users
    commands: DocumentCommands


def build_container(settings: Settings) -> Container:
    """Connect the database and wire every repository around it."""
    database = Database(settings)
    database.connect()
    database.init_schema()

    workflow = WorkflowEngine(strict=settings.workflow_strict_transitions)
    documents = DocumentRepository(database, workflow)
    queries = DocumentQueries(
        database,
        documents,
        default_limit=settings.pagination_default_limit,
        max_limit=settings.pagination_max_limit,
    )
    statistics = DocumentStatistics(database, recent_days=settings.recent_documents_days)
    change_requests = ChangeRequests(database)
    return Container(
        database=database,
        workflow=workflow,
        documents=documents,
        queries=queries,
        statistics=statistics,
        change_requests=change_requests,
        users=Users(database),
        commands=DocumentCommands(documents, queries, statistics, change_requests),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level, settings.log_format)
    container = build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        container.database.close()

    app = FastAPI(title="Docflow API", lifespan=lifespan)
    app.state.container = container
    register_error_handlers(app)

    app.include_router(documents_router)
    app.include_router(change_requests_router)
    app.include_router(users_router)

    @app.get("/health")
    def health_check():
        if container.database.health_check():
            return {"status": "ok"}
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    return app
