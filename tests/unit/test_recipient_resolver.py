from app.models.procurement.purchase_request import PurchaseRequest
from app.models.shared.enums import NotificationReason as R, RequestStatus as S
from app.models.workflow.request_comment import RequestComment
from app.models.workflow.request_document import ConceptNote, PurchaseOrder
from app.services.notification.recipient_resolver import copy_plan, resolve_recipients
from app.services.workflow.registry import WorkflowKind

CREATOR, REVIEWER, APPROVER, FINANCE, PROCUREMENT, COMMENTER = range(1, 7)


def concept_note(**kwargs):
    fields = dict(id=1, creator_id=CREATOR, reviewed_by=REVIEWER, approved_by=APPROVER, comments=[], copied_to=[])
    fields.update(kwargs)
    return ConceptNote(**fields)


def comment(user_id, deleted=False):
    return RequestComment(user_id=user_id, text="noted", is_edited=False, is_deleted=deleted)


def test_unchanged_status_notifies_nobody():
    plan = resolve_recipients(concept_note(), S.PENDING, S.PENDING, REVIEWER, WorkflowKind.REVIEW_APPROVE)
    assert plan.is_empty


def test_pending_assigns_reviewer():
    plan = resolve_recipients(concept_note(), S.DRAFT, S.PENDING, CREATOR, WorkflowKind.REVIEW_APPROVE)
    assert [(b.reason, b.recipient_ids) for b in plan.batches] == [(R.ASSIGNED, (REVIEWER,))]


def test_pending_assigns_both_dual_reviewers():
    doc = PurchaseRequest(id=2, creator_id=CREATOR, finance_reviewer_id=FINANCE,
                          procurement_reviewer_id=PROCUREMENT, approved_by=APPROVER)
    plan = resolve_recipients(doc, S.DRAFT, S.PENDING, CREATOR, WorkflowKind.DUAL_REVIEW)
    assert plan.recipients_for(R.ASSIGNED) == (FINANCE, PROCUREMENT)


def test_pending_assigns_approver_in_simple_flow():
    doc = PurchaseOrder(id=3, creator_id=CREATOR, approved_by=APPROVER, comments=[])
    plan = resolve_recipients(doc, S.DRAFT, S.PENDING, CREATOR, WorkflowKind.SIMPLE)
    assert plan.recipient_ids == (APPROVER,)


def test_reviewed_notifies_creator_and_next_approver():
    plan = resolve_recipients(concept_note(), S.PENDING, S.REVIEWED, REVIEWER, WorkflowKind.REVIEW_APPROVE)
    assert plan.recipients_for(R.REVIEWED) == (CREATOR,)
    assert plan.recipients_for(R.ASSIGNED) == (APPROVER,)


def test_approved_notifies_creator_and_reviewer_of_record():
    plan = resolve_recipients(concept_note(), S.REVIEWED, S.APPROVED, APPROVER, WorkflowKind.REVIEW_APPROVE)
    assert plan.recipients_for(R.APPROVED) == (CREATOR, REVIEWER)


def test_simple_flow_also_tells_commenters():
    doc = PurchaseOrder(
        id=3, creator_id=CREATOR, approved_by=APPROVER,
        comments=[comment(COMMENTER), comment(APPROVER), comment(7, deleted=True), comment(CREATOR)],
    )
    plan = resolve_recipients(doc, S.PENDING, S.REJECTED, APPROVER, WorkflowKind.SIMPLE)
    assert plan.recipients_for(R.REJECTED) == (CREATOR, COMMENTER)


def test_rejected_from_pending_only_tells_creator():
    plan = resolve_recipients(concept_note(), S.PENDING, S.REJECTED, REVIEWER, WorkflowKind.REVIEW_APPROVE)
    assert plan.recipient_ids == (CREATOR,)


def test_rejected_after_review_tells_reviewer_too():
    plan = resolve_recipients(concept_note(), S.REVIEWED, S.REJECTED, APPROVER, WorkflowKind.REVIEW_APPROVE)
    assert plan.recipients_for(R.REJECTED) == (CREATOR, REVIEWER)


def test_withdrawal_is_a_status_update_for_the_creator():
    plan = resolve_recipients(concept_note(), S.PENDING, S.DRAFT, REVIEWER, WorkflowKind.REVIEW_APPROVE)
    assert [(b.reason, b.recipient_ids) for b in plan.batches] == [(R.STATUS_UPDATED, (CREATOR,))]


def test_actor_never_notified():
    plan = resolve_recipients(concept_note(creator_id=REVIEWER), S.PENDING, S.REVIEWED, REVIEWER,
                              WorkflowKind.REVIEW_APPROVE)
    assert REVIEWER not in plan.recipient_ids


def test_each_user_notified_once():
    doc = concept_note(reviewed_by=CREATOR)
    plan = resolve_recipients(doc, S.REVIEWED, S.APPROVED, APPROVER, WorkflowKind.REVIEW_APPROVE)
    assert plan.recipient_ids == (CREATOR,)


def test_missing_references_are_skipped():
    plan = resolve_recipients(concept_note(approved_by=None), S.PENDING, S.REVIEWED, REVIEWER,
                              WorkflowKind.REVIEW_APPROVE)
    assert plan.recipients_for(R.ASSIGNED) == ()


def test_copy_plan_skips_actor_and_duplicates():
    plan = copy_plan([4, 5, 4, CREATOR], CREATOR, "Concept Note")
    assert [(b.reason, b.recipient_ids) for b in plan.batches] == [(R.COPIED, (4, 5))]
    assert "Concept Note" in plan.batches[0].header
