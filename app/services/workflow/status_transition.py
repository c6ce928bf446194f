"""
Status transition state machine shared by every request type.

``transition`` mutates an in-memory request document according to a
``StatusChange`` and returns what happened plus the notification plan. It does
not touch the session; the calling service persists the document and
dispatches notifications once the unit of work has been committed.
"""
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from app.core.exceptions import InvalidTransitionError, UnauthorizedError, ValidationError
from app.models.shared.enums import RequestStatus, ReviewStatus, UserRole
from app.models.workflow.request_comment import RequestComment
from app.schemas.system.system_settings_schema import SystemSettingsSnapshot
from app.schemas.workflow.request_schema import StatusChange
from app.services.notification.recipient_resolver import NotificationPlan, resolve_recipients
from app.services.workflow.registry import (
    WorkflowKind,
    allowed_statuses,
    reachable_statuses,
    workflow_for_document,
)

logger = logging.getLogger(__name__)

_CREATOR_MOVES = frozenset({
    (RequestStatus.DRAFT, RequestStatus.PENDING),  # submit
    (RequestStatus.PENDING, RequestStatus.DRAFT),  # withdraw
    (RequestStatus.REJECTED, RequestStatus.PENDING),  # resubmit
})

_SUB_STATUS_FIELDS = (
    ("finance_review_status", "finance_reviewer_id"),
    ("procurement_review_status", "procurement_reviewer_id"),
)


@dataclass(frozen=True)
class WorkflowPolicy:
    """Who may override role references and what happens to unauthorized writes."""
    override_roles: FrozenSet[UserRole] = frozenset({UserRole.SUPER_ADMIN})
    strict_permissions: bool = False

    @classmethod
    def from_snapshot(cls, snapshot: SystemSettingsSnapshot) -> "WorkflowPolicy":
        return cls(strict_permissions=snapshot.strict_status_permissions)

    def is_override(self, actor) -> bool:
        return actor.role in self.override_roles


@dataclass
class TransitionResult:
    document: object
    previous_status: RequestStatus
    new_status: RequestStatus
    status_applied: bool = False
    dropped_reason: Optional[str] = None
    notifications: NotificationPlan = field(default_factory=NotificationPlan)

    @property
    def changed(self) -> bool:
        return self.previous_status != self.new_status


def _parse_status(value) -> Optional[RequestStatus]:
    if value is None:
        return None
    try:
        return RequestStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Invalid status: {value}")


def _parse_review_status(value) -> Optional[ReviewStatus]:
    if value is None:
        return None
    try:
        return ReviewStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Invalid review status: {value}")


def _current_review_status(document, attr: str) -> ReviewStatus:
    return ReviewStatus(getattr(document, attr) or ReviewStatus.PENDING)


def _validate_target(kind: WorkflowKind, current: RequestStatus, target: RequestStatus) -> None:
    if target not in allowed_statuses(kind):
        raise InvalidTransitionError(f"Status '{target.value}' is not part of this workflow")
    if target not in reachable_statuses(kind, current):
        raise InvalidTransitionError(
            f"Cannot move from '{current.value}' to '{target.value}'"
        )


def _validate_assignees(document, change: StatusChange, kind: WorkflowKind, target: RequestStatus) -> None:
    """A document going to pending must name whoever acts on it next."""
    if target != RequestStatus.PENDING:
        return
    if kind == WorkflowKind.DUAL_REVIEW:
        if not (document.finance_reviewer_id and document.procurement_reviewer_id):
            raise ValidationError("Both finance and procurement reviewers must be assigned")
    elif kind == WorkflowKind.SIMPLE:
        if not (change.approved_by or document.approved_by):
            raise ValidationError("An approver must be assigned")
    elif not (change.reviewed_by or document.reviewed_by):
        raise ValidationError("A reviewer must be assigned")


def _status_permission(document, actor, policy: WorkflowPolicy, kind: WorkflowKind,
                       current: RequestStatus, target: RequestStatus) -> Optional[str]:
    """Return why ``actor`` may not write ``target``, or None when allowed."""
    if document.creator_id == actor.id and (current, target) in _CREATOR_MOVES:
        return None
    if kind == WorkflowKind.DUAL_REVIEW:
        if document.approved_by != actor.id:
            return "only the assigned approver can change the status of a purchase request"
        if current != RequestStatus.REVIEWED:
            return "purchase request must be reviewed by finance and procurement first"
        return None
    if actor.id in (document.reviewed_by, document.approved_by) or policy.is_override(actor):
        return None
    return "actor is neither the assigned reviewer nor approver"


def _apply_single_review(document, change: StatusChange, actor, target: RequestStatus) -> None:
    if target == RequestStatus.REVIEWED:
        document.reviewed_by = actor.id
        document.approved_by = None
        if change.approved_by is not None:
            document.approved_by = change.approved_by
    elif target == RequestStatus.APPROVED:
        document.approved_by = actor.id
    elif target == RequestStatus.PENDING:
        if change.reviewed_by is not None:
            document.reviewed_by = change.reviewed_by
        if change.approved_by is not None:
            document.approved_by = change.approved_by
    document.status = target


def _apply_dual_review(document, change: StatusChange, actor, sub_writes,
                       status_target: Optional[RequestStatus]) -> None:
    current = RequestStatus(document.status)

    if status_target is not None:
        if status_target == RequestStatus.PENDING:
            # resubmission starts both reviews over
            document.finance_review_status = ReviewStatus.PENDING
            document.procurement_review_status = ReviewStatus.PENDING
            if change.approved_by is not None:
                document.approved_by = change.approved_by
        elif status_target == RequestStatus.APPROVED:
            document.approved_by = actor.id
        document.status = status_target
        return

    for attr, value in sub_writes:
        setattr(document, attr, value)

    if current != RequestStatus.PENDING or not sub_writes:
        return

    finance = _current_review_status(document, "finance_review_status")
    procurement = _current_review_status(document, "procurement_review_status")
    if ReviewStatus.REJECTED in (finance, procurement):
        document.status = RequestStatus.REJECTED
    elif finance == ReviewStatus.APPROVED and procurement == ReviewStatus.APPROVED:
        document.status = RequestStatus.REVIEWED
        document.reviewed_by = actor.id


def _release_on_rejection(document, actor, previous: RequestStatus) -> None:
    if document.status != RequestStatus.REJECTED:
        return
    if previous not in (RequestStatus.PENDING, RequestStatus.REVIEWED, RequestStatus.APPROVED):
        return
    if document.reviewed_by == actor.id:
        document.reviewed_by = None
    if document.approved_by == actor.id:
        document.approved_by = None


def transition(document, change: StatusChange, actor,
               policy: Optional[WorkflowPolicy] = None,
               kind: Optional[WorkflowKind] = None) -> TransitionResult:
    """
    Apply ``change`` to ``document`` on behalf of ``actor``.

    Invalid or unreachable statuses raise ``InvalidTransitionError`` before
    anything is mutated. A status write the actor is not entitled to is
    dropped and the comment still applies, unless the policy is strict, in
    which case ``UnauthorizedError`` is raised up front.
    """
    policy = policy or WorkflowPolicy()
    workflow = workflow_for_document(document)
    kind = kind or workflow.kind
    previous = RequestStatus(document.status)

    target = _parse_status(change.status)
    if target == previous:
        target = None

    sub_requests: Tuple = ()
    if change.finance_review_status is not None or change.procurement_review_status is not None:
        if kind != WorkflowKind.DUAL_REVIEW:
            raise InvalidTransitionError("Review sub-statuses only apply to purchase requests")
        sub_requests = tuple(
            (attr, owner_attr, _parse_review_status(getattr(change, attr)))
            for attr, owner_attr in _SUB_STATUS_FIELDS
            if getattr(change, attr) is not None
        )
        sub_requests = tuple(
            item for item in sub_requests if item[2] != _current_review_status(document, item[0])
        )
        if sub_requests and target is not None:
            raise InvalidTransitionError("Cannot record a review and change the status in the same update")
        if sub_requests and previous != RequestStatus.PENDING:
            raise InvalidTransitionError(
                f"Reviews can only be recorded while the request is pending, not '{previous.value}'"
            )

    if target is not None:
        _validate_target(kind, previous, target)

    # Permission check happens before any mutation so strict mode stays atomic
    dropped = []
    status_target = None
    if target is not None:
        reason = _status_permission(document, actor, policy, kind, previous, target)
        if reason is None:
            _validate_assignees(document, change, kind, target)
            status_target = target
        else:
            dropped.append(f"status '{target.value}': {reason}")

    sub_writes = []
    for attr, owner_attr, value in sub_requests:
        if getattr(document, owner_attr) == actor.id:
            sub_writes.append((attr, value))
        else:
            dropped.append(f"{attr} '{value.value}': actor is not the assigned reviewer")

    dropped_reason = "; ".join(dropped) or None
    if dropped_reason:
        if policy.strict_permissions:
            raise UnauthorizedError(f"Not authorised to update {dropped_reason}")
        logger.warning(
            f"Dropped unauthorized write on {document!r} by user {actor.id}: {dropped_reason}"
        )

    if change.comment:
        document.comments.insert(0, RequestComment(
            user_id=actor.id,
            text=change.comment,
            is_edited=False,
            is_deleted=False,
            created_by=actor.id,
        ))

    if kind == WorkflowKind.DUAL_REVIEW:
        _apply_dual_review(document, change, actor, sub_writes, status_target)
    elif status_target is not None:
        _apply_single_review(document, change, actor, status_target)

    _release_on_rejection(document, actor, previous)

    new_status = RequestStatus(document.status)
    if new_status != previous:
        document.updated_by = actor.id
        logger.info(
            f"{workflow.title} {document.id} moved {previous.value} -> {new_status.value} by user {actor.id}"
        )

    plan = resolve_recipients(document, previous, new_status, actor.id, kind, workflow.title)

    return TransitionResult(
        document=document,
        previous_status=previous,
        new_status=new_status,
        status_applied=status_target is not None or bool(sub_writes),
        dropped_reason=dropped_reason,
        notifications=plan,
    )
