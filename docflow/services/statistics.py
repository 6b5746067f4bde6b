import enum
import logging
from datetime import timedelta

from sqlalchemy import func, select

from docflow.db import Database
from docflow.models.common import utcnow
from docflow.models.document import ChangeRequest, Document
from docflow.models.enums import DocumentStatus
from docflow.schemas.document import StatisticsRead

logger = logging.getLogger(__name__)


def _key(value) -> str:
    if isinstance(value, enum.Enum):
        return value.value
    return "unspecified" if value is None else str(value)


class DocumentStatistics:
    """Dashboard rollups computed straight from the tables on every call."""

    def __init__(self, database: Database, recent_days: int = 30):
        self.database = database
        self.recent_days = recent_days

    @staticmethod
    def _grouped(session, column, where=None) -> dict[str, int]:
        stmt = select(column, func.count()).group_by(column)
        if where is not None:
            stmt = stmt.where(where)
        return {_key(value): count for value, count in session.execute(stmt).all()}

    @staticmethod
    def _count(session, *conditions) -> int:
        stmt = select(func.count()).select_from(Document)
        for condition in conditions:
            stmt = stmt.where(condition)
        return session.scalar(stmt) or 0

    def collect(self) -> StatisticsRead:
        since = utcnow() - timedelta(days=self.recent_days)
        with self.database.session() as session:
            stats = StatisticsRead(
                total_documents=self._count(session),
                by_status=self._grouped(session, Document.status),
                by_type=self._grouped(session, Document.document_type),
                by_department=self._grouped(session, Document.department),
                recent_documents=self._count(session, Document.created_at > since),
                pending_review=self._count(
                    session, Document.status == DocumentStatus.under_review
                ),
                pending_approval=self._count(
                    session, Document.status == DocumentStatus.pending_owner_approval
                ),
                live=self._count(session, Document.status == DocumentStatus.live),
                change_requests_by_status=self._grouped(
                    session, ChangeRequest.status, ChangeRequest.deleted_at.is_(None)
                ),
            )
        logger.debug("Collected statistics over %d documents", stats.total_documents)
        return stats
