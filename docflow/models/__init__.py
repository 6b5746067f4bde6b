from docflow.models.common import DeletePolicy  # noqa: F401
from docflow.models.document import (  # noqa: F401
    USER_LINK_MODELS,
    ChangeRequest,
    ComplianceContact,
    ComplianceName,
    Document,
    DocumentComment,
    DocumentCreator,
    DocumentFile,
    DocumentOwner,
    DocumentReviewer,
)
from docflow.models.enums import (  # noqa: F401
    ChangeRequestStatus,
    ChangeRequestType,
    DocumentStatus,
    Priority,
    RelationshipKind,
    UserRole,
)
from docflow.models.user import User  # noqa: F401
