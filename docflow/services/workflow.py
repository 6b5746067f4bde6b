"""Document status state machine.

The only rule always enforced is the change-request substitution: asking
for ``under-review`` on a ``live`` document stores ``live-cr``, so the
document stays published while a change is in flight.

``TRANSITIONS`` lists the moves the approval workflow actually makes. By
default a move outside the table is still applied and only logged; with
``strict=True`` it is rejected with ``WorkflowError``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from docflow.errors import NotFoundError, WorkflowError
from docflow.models.document import Document
from docflow.models.enums import DocumentStatus as S
from docflow.services.common import coerce_enum, coerce_uuid

logger = logging.getLogger(__name__)

_RETIRE = frozenset({S.archived, S.deleted})

TRANSITIONS: dict[S, frozenset[S]] = {
    S.draft: frozenset({S.under_review, S.pending_creator_approval}) | _RETIRE,
    S.under_review: frozenset(
        {
            S.reviewed,
            S.queried,
            S.under_revision,
            S.pending_creator_approval,
            S.pending_owner_approval,
            S.rejected,
            S.draft,
        }
    )
    | _RETIRE,
    S.queried: frozenset({S.under_review, S.under_revision, S.pending_with_requester})
    | _RETIRE,
    S.pending_with_requester: frozenset({S.under_review, S.queried, S.under_revision})
    | _RETIRE,
    S.reviewed: frozenset(
        {S.pending_creator_approval, S.pending_owner_approval, S.under_revision}
    )
    | _RETIRE,
    S.pending_creator_approval: frozenset(
        {
            S.pending_requester_approval,
            S.pending_owner_approval,
            S.under_revision,
            S.rejected,
        }
    )
    | _RETIRE,
    S.pending_requester_approval: frozenset(
        {S.pending_owner_approval, S.under_revision, S.rejected}
    )
    | _RETIRE,
    S.under_revision: frozenset({S.under_review, S.pending_creator_approval}) | _RETIRE,
    S.pending_owner_approval: frozenset({S.approved, S.rejected, S.under_revision})
    | _RETIRE,
    S.approved: frozenset({S.live, S.under_revision}) | _RETIRE,
    S.rejected: frozenset({S.draft, S.under_revision}) | _RETIRE,
    S.live: frozenset({S.live_cr, S.under_revision}) | _RETIRE,
    S.live_cr: frozenset({S.live, S.approved, S.archived}),
    S.archived: frozenset({S.deleted}),
    S.deleted: frozenset(),
}


@dataclass(frozen=True)
class StatusChange:
    document_id: uuid.UUID
    previous: S
    requested: S
    applied: S

    @property
    def substituted(self) -> bool:
        return self.requested is not self.applied

    @property
    def changed(self) -> bool:
        return self.previous is not self.applied


class WorkflowEngine:
    def __init__(
        self,
        strict: bool = False,
        transitions: dict[S, frozenset[S]] | None = None,
    ):
        self.strict = strict
        self.transitions = transitions if transitions is not None else TRANSITIONS

    @staticmethod
    def resolve(current: S, requested: S) -> S:
        if current is S.live and requested is S.under_review:
            return S.live_cr
        return requested

    def is_allowed(self, current: S, target: S) -> bool:
        if current is target:
            return True
        return target in self.transitions.get(current, frozenset())

    def check(self, current: S, target: S) -> None:
        if self.is_allowed(current, target):
            return
        if self.strict:
            raise WorkflowError(
                f"Transition from {current.value} to {target.value} is not allowed",
                {
                    "from": current.value,
                    "to": target.value,
                    "allowed": sorted(s.value for s in self.transitions.get(current, ())),
                },
            )
        logger.warning(
            "Status transition %s -> %s is outside the workflow table",
            current.value,
            target.value,
        )

    def transition(self, session: Session, document_id, requested) -> StatusChange:
        """Resolve, check and apply a status change to a document row."""
        requested = coerce_enum(S, requested, "status")
        document = session.get(Document, coerce_uuid(document_id))
        if document is None:
            raise NotFoundError("Document not found", {"document_id": str(document_id)})
        return self.apply(document, requested)

    def apply(self, document: Document, requested: S) -> StatusChange:
        previous = document.status
        target = self.resolve(previous, requested)
        self.check(previous, target)
        document.status = target
        if target is not requested:
            logger.info(
                "Document %s is live, storing %s instead of %s",
                document.id,
                target.value,
                requested.value,
            )
        return StatusChange(
            document_id=document.id,
            previous=previous,
            requested=requested,
            applied=target,
        )
