from datetime import timedelta

from docflow.models.common import utcnow
from docflow.models.document import Document
from docflow.schemas.change_request import ChangeRequestCreate
from docflow.services.statistics import DocumentStatistics


class TestStatistics:
    def test_empty_database(self, statistics):
        stats = statistics.collect()
        assert stats.total_documents == 0
        assert stats.by_status == {}
        assert stats.recent_documents == 0
        assert stats.change_requests_by_status == {}

    def test_rollups(self, statistics, documents, make_document):
        make_document(department="Finance", document_type="SOP")
        make_document(department="Finance", document_type="Policy")
        reviewed = make_document(department="IT", document_type="SOP")
        pending = make_document(department="IT", document_type="SOP")
        live = make_document(department="HR", document_type="Form")
        documents.update_status(reviewed.id, "under-review")
        documents.update_status(pending.id, "pending-owner-approval")
        documents.update_status(live.id, "live")

        stats = statistics.collect()

        assert stats.total_documents == 5
        assert stats.by_status == {
            "draft": 2,
            "under-review": 1,
            "pending-owner-approval": 1,
            "live": 1,
        }
        assert stats.by_type == {"SOP": 3, "Policy": 1, "Form": 1}
        assert stats.by_department == {"Finance": 2, "IT": 2, "HR": 1}
        assert stats.pending_review == 1
        assert stats.pending_approval == 1
        assert stats.live == 1

    def test_recent_window(self, database, make_document):
        old = make_document()
        make_document()
        with database.transaction() as session:
            session.get(Document, old.id).created_at = utcnow() - timedelta(days=45)

        assert DocumentStatistics(database, recent_days=30).collect().recent_documents == 1
        assert DocumentStatistics(database, recent_days=60).collect().recent_documents == 2

    def test_change_requests_by_status(
        self, statistics, change_requests, make_document, user
    ):
        document = make_document()
        first = change_requests.create(
            ChangeRequestCreate(
                document_id=document.id,
                requester_id=user.id,
                request_type="revision",
                description="Refresh section 2",
            )
        )
        second = change_requests.create(
            ChangeRequestCreate(
                document_id=document.id,
                requester_id=user.id,
                request_type="correction",
                description="Typo on page 3",
            )
        )
        change_requests.update_status(first.id, "approved")
        change_requests.withdraw(second.id)

        stats = statistics.collect()
        assert stats.change_requests_by_status == {"approved": 1}
