import enum


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentStatus(enum.Enum):
    draft = "draft"
    under_review = "under-review"
    pending_creator_approval = "pending-creator-approval"
    pending_requester_approval = "pending-requester-approval"
    under_revision = "under-revision"
    pending_owner_approval = "pending-owner-approval"
    approved = "approved"
    rejected = "rejected"
    live = "live"
    live_cr = "live-cr"
    archived = "archived"
    deleted = "deleted"
    queried = "queried"
    reviewed = "reviewed"
    pending_with_requester = "pending-with-requester"


class RelationshipKind(enum.Enum):
    owners = "owners"
    reviewers = "reviewers"
    creators = "creators"
    compliance_contacts = "compliance_contacts"
    compliance_names = "compliance_names"


INITIAL_STATUSES = frozenset({DocumentStatus.draft, DocumentStatus.under_review})

# "major.minor", e.g. "1.0" or "2.3"
VERSION_PATTERN = r"^\d+\.\d+$"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserRole(enum.Enum):
    admin = "admin"
    document_controller = "document-controller"
    document_creator = "document-creator"
    document_owner = "document-owner"
    reviewer = "reviewer"
    requester = "requester"
    document_requester = "document-requester"


# ---------------------------------------------------------------------------
# Change requests
# ---------------------------------------------------------------------------


class ChangeRequestType(enum.Enum):
    revision = "revision"
    correction = "correction"
    update = "update"
    deletion = "deletion"


class ChangeRequestStatus(enum.Enum):
    pending = "pending"
    under_review = "under-review"
    approved = "approved"
    rejected = "rejected"


class Priority(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


OPEN_CHANGE_REQUEST_STATUSES = frozenset(
    {ChangeRequestStatus.pending, ChangeRequestStatus.under_review}
)
