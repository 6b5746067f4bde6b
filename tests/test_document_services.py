import uuid

import pytest

from docflow.errors import ConstraintError, DuplicateError, NotFoundError, ValidationError
from docflow.models.document import (
    ComplianceContact,
    ComplianceName,
    DocumentComment,
    DocumentCreator,
    DocumentFile,
    DocumentOwner,
    DocumentReviewer,
)
from docflow.models.enums import DocumentStatus, RelationshipKind
from docflow.schemas.document import (
    DocumentCreate,
    DocumentFileCreate,
    DocumentRelationships,
    DocumentUpdate,
)


def _payload(**overrides):
    defaults = dict(
        name="Quality Manual",
        document_code="QM-001",
        document_type="Manual",
        department="Quality",
        country="Kenya",
    )
    defaults.update(overrides)
    return DocumentCreate(**defaults)


def _file_payload(uploader_id, **overrides):
    defaults = dict(
        file_name="qm-001-v2.pdf",
        original_name="Quality Manual v2.pdf",
        file_path="uploads/qm-001-v2.pdf",
        file_size=2048,
        mime_type="application/pdf",
        file_hash="ab" * 32,
        uploaded_by=uploader_id,
    )
    defaults.update(overrides)
    return DocumentFileCreate(**defaults)


def _ids(summaries):
    return [s.id for s in summaries]


class TestCreate:
    def test_create_then_get_round_trips(self, documents, make_user):
        owner = make_user()
        reviewer = make_user(role="reviewer")
        created = documents.create_with_relationships(
            _payload(description="Top level manual"),
            DocumentRelationships(
                owners=[owner.id],
                reviewers=[reviewer.id],
                compliance_names=[{"name": "Regulator", "email": "reg@example.com"}],
            ),
        )
        fetched = documents.get_with_relationships(created.id)
        assert fetched == created
        assert fetched.status is DocumentStatus.draft
        assert fetched.version_number == "1.0"
        assert _ids(fetched.owners) == [owner.id]
        assert _ids(fetched.reviewers) == [reviewer.id]
        assert fetched.creators == []
        assert [c.name for c in fetched.compliance_names] == ["Regulator"]

    def test_create_under_review(self, documents):
        created = documents.create_with_relationships(_payload(status="under-review"))
        assert created.status is DocumentStatus.under_review

    def test_create_rejects_non_initial_status(self, documents):
        with pytest.raises(ValidationError):
            documents.create_with_relationships(_payload(status="live"))

    def test_create_rejects_unknown_status(self, documents):
        with pytest.raises(ValidationError):
            documents.create_with_relationships(_payload(status="published"))

    def test_duplicate_code_rejected(self, documents):
        first = documents.create_with_relationships(_payload())
        with pytest.raises(DuplicateError):
            documents.create_with_relationships(_payload(name="Another"))
        assert documents.get_with_relationships(first.id) == first

    def test_failed_create_leaves_nothing_behind(self, documents, database, make_user):
        owner = make_user()
        with pytest.raises(ConstraintError):
            documents.create_with_relationships(
                _payload(),
                DocumentRelationships(owners=[owner.id, uuid.uuid4()]),
            )
        assert documents.is_code_unique("QM-001") is True
        with database.session() as session:
            assert session.query(DocumentOwner).count() == 0

    def test_duplicate_user_ids_collapse(self, documents, make_user):
        owner = make_user()
        created = documents.create_with_relationships(
            _payload(), DocumentRelationships(owners=[owner.id, owner.id])
        )
        assert _ids(created.owners) == [owner.id]

    def test_get_missing(self, documents):
        assert documents.get_with_relationships(uuid.uuid4()) is None
        with pytest.raises(NotFoundError):
            documents.get(uuid.uuid4())


class TestRelationships:
    def test_replacing_owners_is_idempotent(self, documents, make_user):
        first, second = make_user(), make_user()
        created = documents.create_with_relationships(
            _payload(), DocumentRelationships(owners=[first.id])
        )
        rels = DocumentRelationships(owners=[first.id, second.id])
        once = documents.update_with_relationships(created.id, relationships=rels)
        twice = documents.update_with_relationships(created.id, relationships=rels)
        assert _ids(once.owners) == [first.id, second.id]
        assert _ids(twice.owners) == [first.id, second.id]

    def test_omitted_kinds_are_untouched(self, documents, make_user):
        owner, reviewer, new_owner = make_user(), make_user(), make_user()
        created = documents.create_with_relationships(
            _payload(),
            DocumentRelationships(owners=[owner.id], reviewers=[reviewer.id]),
        )
        updated = documents.update_with_relationships(
            created.id, relationships=DocumentRelationships(owners=[new_owner.id])
        )
        assert _ids(updated.owners) == [new_owner.id]
        assert _ids(updated.reviewers) == [reviewer.id]

    def test_empty_list_clears_kind(self, documents, make_user):
        owner = make_user()
        created = documents.create_with_relationships(
            _payload(), DocumentRelationships(owners=[owner.id])
        )
        updated = documents.update_with_relationships(
            created.id, relationships=DocumentRelationships(owners=[])
        )
        assert updated.owners == []

    def test_replace_relationship_direct(self, documents, database, make_user):
        created = documents.create_with_relationships(_payload())
        contact = make_user()
        with database.transaction() as session:
            documents.replace_relationship(
                session, created.id, RelationshipKind.compliance_contacts, [contact.id]
            )
            documents.replace_relationship(
                session,
                created.id,
                "compliance_names",
                [{"name": "Auditor"}, {"name": "Auditor"}],
            )
        fetched = documents.get_with_relationships(created.id)
        assert _ids(fetched.compliance_contacts) == [contact.id]
        assert [c.name for c in fetched.compliance_names] == ["Auditor"]

    def test_inactive_users_hidden(self, documents, users, make_user):
        owner = make_user()
        created = documents.create_with_relationships(
            _payload(), DocumentRelationships(owners=[owner.id])
        )
        users.deactivate(owner.id)
        assert documents.get_with_relationships(created.id).owners == []


class TestUpdate:
    def test_patch_fields(self, documents):
        created = documents.create_with_relationships(_payload())
        updated = documents.update_with_relationships(
            created.id, DocumentUpdate(name="Quality Manual v2", version_number="2.0")
        )
        assert updated.name == "Quality Manual v2"
        assert updated.version_number == "2.0"
        assert updated.department == "Quality"
        assert updated.updated_at >= created.updated_at

    def test_code_change_to_taken_code(self, documents):
        documents.create_with_relationships(_payload(document_code="QM-001"))
        other = documents.create_with_relationships(_payload(document_code="QM-002"))
        with pytest.raises(DuplicateError):
            documents.update_with_relationships(
                other.id, DocumentUpdate(document_code="QM-001")
            )

    def test_status_patch_goes_through_workflow(self, documents):
        created = documents.create_with_relationships(_payload())
        documents.update_status(created.id, "live")
        updated = documents.update_with_relationships(
            created.id, DocumentUpdate(status="under-review")
        )
        assert updated.status is DocumentStatus.live_cr

    def test_update_missing(self, documents):
        with pytest.raises(NotFoundError):
            documents.update_with_relationships(uuid.uuid4(), DocumentUpdate(name="x"))

    def test_invalid_version_number(self):
        with pytest.raises(ValueError):
            DocumentUpdate(version_number="v2")

    @pytest.mark.parametrize("field", ["document_type", "department", "country"])
    def test_empty_required_text_rejected(self, field):
        with pytest.raises(ValueError):
            DocumentUpdate(**{field: ""})

    @pytest.mark.parametrize(
        "field", ["name", "document_code", "department", "version_number", "needs_review"]
    )
    def test_null_required_field_rejected(self, documents, field):
        created = documents.create_with_relationships(_payload())
        with pytest.raises(ValidationError):
            documents.update_with_relationships(created.id, DocumentUpdate(**{field: None}))
        assert documents.get_with_relationships(created.id) == created

    def test_rejected_patch_keeps_document_listable(self, documents, queries):
        created = documents.create_with_relationships(_payload())
        with pytest.raises(ValidationError):
            documents.update_with_relationships(
                created.id, DocumentUpdate(document_type=None, country=None)
            )
        page = queries.list_documents()
        assert [d.id for d in page.documents] == [created.id]
        assert page.documents[0].document_type == "Manual"

    def test_null_optional_field_clears(self, documents):
        created = documents.create_with_relationships(_payload(description="Draft text"))
        updated = documents.update_with_relationships(
            created.id, DocumentUpdate(description=None)
        )
        assert updated.description is None


class TestStatus:
    def test_status_change_clears_pending_with(self, documents, user):
        created = documents.create_with_relationships(_payload(pending_with="Alice"))
        change = documents.update_status(created.id, "under-review", user.id)
        assert change.status is DocumentStatus.under_review
        assert change.changed_by == user.id
        assert change.document.pending_with is None

    def test_archive_and_soft_delete(self, documents):
        first = documents.create_with_relationships(_payload(document_code="A-1"))
        second = documents.create_with_relationships(_payload(document_code="A-2"))
        assert documents.archive(first.id).status is DocumentStatus.archived
        assert documents.soft_delete(second.id).status is DocumentStatus.deleted

    def test_update_status_missing(self, documents):
        with pytest.raises(NotFoundError):
            documents.update_status(uuid.uuid4(), "live")


class TestCodeUniqueness:
    def test_is_code_unique(self, documents):
        created = documents.create_with_relationships(_payload())
        assert documents.is_code_unique("QM-001") is False
        assert documents.is_code_unique("QM-001", exclude_id=created.id) is True
        assert documents.is_code_unique("QM-999") is True

    def test_soft_deleted_code_can_be_reused(self, documents):
        created = documents.create_with_relationships(_payload())
        documents.soft_delete(created.id)
        assert documents.is_code_unique("QM-001") is True
        reused = documents.create_with_relationships(_payload(name="Replacement"))
        assert reused.id != created.id


class TestCommentsAndFiles:
    def test_comments_newest_first(self, documents, user):
        created = documents.create_with_relationships(_payload())
        first = documents.add_comment(created.id, user.id, "First")
        second = documents.add_comment(created.id, user.id, "Second")
        assert second.user_name == "Alice Owner"
        fetched = documents.get_with_relationships(created.id)
        assert [c.id for c in fetched.comments] == [second.id, first.id]

    def test_empty_comment_rejected(self, documents, user):
        created = documents.create_with_relationships(_payload())
        with pytest.raises(ValidationError):
            documents.add_comment(created.id, user.id, "   ")

    def test_comment_unknown_document(self, documents, user):
        with pytest.raises(ConstraintError):
            documents.add_comment(uuid.uuid4(), user.id, "Hello")

    def test_comment_unknown_user(self, documents):
        created = documents.create_with_relationships(_payload())
        with pytest.raises(ConstraintError):
            documents.add_comment(created.id, uuid.uuid4(), "Hello")

    def test_add_file_syncs_document(self, documents, user):
        created = documents.create_with_relationships(_payload())
        record = documents.add_file(created.id, _file_payload(user.id))
        fetched = documents.get_with_relationships(created.id)
        assert [f.id for f in fetched.files] == [record.id]
        assert fetched.file_url == "uploads/qm-001-v2.pdf"
        assert fetched.file_size == 2048
        assert fetched.mime_type == "application/pdf"

    def test_add_file_without_sync(self, documents, user):
        created = documents.create_with_relationships(_payload())
        documents.add_file(created.id, _file_payload(user.id), sync_document=False)
        assert documents.get_with_relationships(created.id).file_url is None

    def test_add_file_unknown_uploader(self, documents):
        created = documents.create_with_relationships(_payload())
        with pytest.raises(ConstraintError):
            documents.add_file(created.id, _file_payload(uuid.uuid4()))


class TestHardDelete:
    def test_delete_cascades(self, documents, database, user):
        created = documents.create_with_relationships(
            _payload(),
            DocumentRelationships(
                owners=[user.id],
                reviewers=[user.id],
                creators=[user.id],
                compliance_contacts=[user.id],
                compliance_names=[{"name": "Regulator"}],
            ),
        )
        documents.add_comment(created.id, user.id, "Note")
        documents.add_file(created.id, _file_payload(user.id))

        documents.delete(created.id)

        assert documents.get_with_relationships(created.id) is None
        with database.session() as session:
            for model in (
                DocumentOwner,
                DocumentReviewer,
                DocumentCreator,
                ComplianceContact,
                ComplianceName,
                DocumentComment,
                DocumentFile,
            ):
                assert session.query(model).count() == 0

    def test_delete_missing(self, documents):
        with pytest.raises(NotFoundError):
            documents.delete(uuid.uuid4())
