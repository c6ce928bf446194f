"""
Pure recipient resolution for workflow notifications.

Given the previous and new status of a document and its role references,
work out who should hear about the change and why. Nothing here talks to the
database or the mail transport; the dispatcher does that afterwards.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from app.models.shared.enums import NotificationReason, RequestStatus


@dataclass(frozen=True)
class NotificationBatch:
    reason: NotificationReason
    recipient_ids: Tuple[int, ...]
    header: str


@dataclass(frozen=True)
class NotificationPlan:
    batches: Tuple[NotificationBatch, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.batches

    @property
    def recipient_ids(self) -> Tuple[int, ...]:
        return tuple(user_id for batch in self.batches for user_id in batch.recipient_ids)

    def recipients_for(self, reason: NotificationReason) -> Tuple[int, ...]:
        return tuple(
            user_id
            for batch in self.batches
            if batch.reason == reason
            for user_id in batch.recipient_ids
        )


EMPTY_PLAN = NotificationPlan()


class _PlanBuilder:
    """Collects batches; the actor is skipped and each user is notified once."""

    def __init__(self, actor_id: Optional[int]):
        self._seen: Set[int] = {actor_id} if actor_id is not None else set()
        self._batches: List[NotificationBatch] = []

    def add(self, reason: NotificationReason, user_ids: Iterable[Optional[int]], header: str) -> None:
        recipients = []
        for user_id in user_ids:
            if user_id is None or user_id in self._seen:
                continue
            self._seen.add(user_id)
            recipients.append(user_id)
        if recipients:
            self._batches.append(NotificationBatch(reason, tuple(recipients), header))

    def build(self) -> NotificationPlan:
        return NotificationPlan(tuple(self._batches))


def _commenter_ids(document) -> List[int]:
    return [comment.user_id for comment in getattr(document, "comments", None) or [] if not comment.is_deleted]


def resolve_recipients(
    document,
    previous_status: Optional[RequestStatus],
    new_status: Optional[RequestStatus],
    actor_id: Optional[int],
    kind,
    title: str = "request",
) -> NotificationPlan:
    """Return the notification plan for a status change of ``document``."""
    # Imported here to keep the resolver importable without the model registry
    from app.services.workflow.registry import WorkflowKind

    if new_status is None or previous_status == new_status:
        return EMPTY_PLAN

    new_status = RequestStatus(new_status)
    plan = _PlanBuilder(actor_id)
    creator_id = document.creator_id

    if new_status == RequestStatus.PENDING:
        if kind == WorkflowKind.DUAL_REVIEW:
            assignees = [document.finance_reviewer_id, document.procurement_reviewer_id]
            header = f"You have been assigned a {title} to review"
        elif kind == WorkflowKind.SIMPLE:
            assignees = [document.approved_by]
            header = f"You have been assigned a {title} for approval"
        else:
            assignees = [document.reviewed_by]
            header = f"You have been assigned a {title} to review"
        plan.add(NotificationReason.ASSIGNED, assignees, header)

    elif new_status == RequestStatus.REVIEWED:
        plan.add(NotificationReason.REVIEWED, [creator_id], "Your request has been reviewed")
        plan.add(
            NotificationReason.ASSIGNED,
            [document.approved_by],
            "A request has been reviewed and needs your approval",
        )

    elif new_status == RequestStatus.APPROVED:
        plan.add(NotificationReason.APPROVED, [creator_id], f"Your {title} has been APPROVED")
        plan.add(NotificationReason.APPROVED, [document.reviewed_by], "A request you reviewed has been APPROVED")
        if kind == WorkflowKind.SIMPLE:
            plan.add(
                NotificationReason.APPROVED,
                _commenter_ids(document),
                f"A {title} you commented on has been APPROVED",
            )

    elif new_status == RequestStatus.REJECTED:
        plan.add(NotificationReason.REJECTED, [creator_id], f"Your {title} has been REJECTED")
        if previous_status in (RequestStatus.REVIEWED, RequestStatus.APPROVED):
            plan.add(NotificationReason.REJECTED, [document.reviewed_by], "A request you reviewed has been REJECTED")
        if kind == WorkflowKind.DUAL_REVIEW:
            plan.add(
                NotificationReason.REJECTED,
                [document.finance_reviewer_id, document.procurement_reviewer_id],
                f"A {title} you were reviewing has been REJECTED",
            )
        if kind == WorkflowKind.SIMPLE:
            plan.add(
                NotificationReason.REJECTED,
                _commenter_ids(document),
                f"A {title} you commented on has been REJECTED",
            )

    else:
        plan.add(
            NotificationReason.STATUS_UPDATED,
            [creator_id],
            f"Your request status has been updated to {new_status.value}",
        )

    return plan.build()


def copy_plan(recipient_ids: Iterable[int], actor_id: Optional[int], title: str = "request") -> NotificationPlan:
    plan = _PlanBuilder(actor_id)
    plan.add(NotificationReason.COPIED, recipient_ids, f"A {title} has been shared with you")
    return plan.build()
