"""Request types known to the workflow engine and the status graph of each flow."""
from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Type

from app.models.hr.leave import Leave
from app.models.procurement.purchase_request import PurchaseRequest
from app.models.shared.enums import RequestStatus, RequestType
from app.models.workflow.request_document import (
    AdvanceRequest,
    ConceptNote,
    ExpenseClaim,
    PaymentRequest,
    PaymentVoucher,
    PurchaseOrder,
    RequestDocument,
    StaffStrategy,
    TravelRequest,
)
from app.core.exceptions import NotFoundError


class WorkflowKind(str, Enum):
    REVIEW_APPROVE = "REVIEW_APPROVE"  # reviewer then approver
    SIMPLE = "SIMPLE"  # single approver
    DUAL_REVIEW = "DUAL_REVIEW"  # finance + procurement reviewers, then approver


class RequestWorkflow(NamedTuple):
    model: Type[RequestDocument]
    kind: WorkflowKind
    title: str
    url_path: str
    reference_prefix: str


REQUEST_WORKFLOWS: Dict[RequestType, RequestWorkflow] = {
    RequestType.CONCEPT_NOTE: RequestWorkflow(ConceptNote, WorkflowKind.REVIEW_APPROVE, "Concept Note", "concept-notes/request", "CN"),
    RequestType.PURCHASE_REQUEST: RequestWorkflow(PurchaseRequest, WorkflowKind.DUAL_REVIEW, "Purchase Request", "purchase-requests/request", "PR"),
    RequestType.PAYMENT_REQUEST: RequestWorkflow(PaymentRequest, WorkflowKind.REVIEW_APPROVE, "Payment Request", "payment-requests/request", "PAY"),
    RequestType.ADVANCE_REQUEST: RequestWorkflow(AdvanceRequest, WorkflowKind.REVIEW_APPROVE, "Advance Request", "advance-requests/request", "ADV"),
    RequestType.TRAVEL_REQUEST: RequestWorkflow(TravelRequest, WorkflowKind.REVIEW_APPROVE, "Travel Request", "travel-requests/request", "TR"),
    RequestType.EXPENSE_CLAIM: RequestWorkflow(ExpenseClaim, WorkflowKind.REVIEW_APPROVE, "Expense Claim", "expense-claims/request", "EC"),
    RequestType.PAYMENT_VOUCHER: RequestWorkflow(PaymentVoucher, WorkflowKind.REVIEW_APPROVE, "Payment Voucher", "payment-vouchers/request", "PV"),
    RequestType.PURCHASE_ORDER: RequestWorkflow(PurchaseOrder, WorkflowKind.SIMPLE, "Purchase Order", "purchase-orders/request", "PO"),
    RequestType.STAFF_STRATEGY: RequestWorkflow(StaffStrategy, WorkflowKind.SIMPLE, "Staff Strategy", "staff-strategies/request", "SS"),
    RequestType.LEAVE: RequestWorkflow(Leave, WorkflowKind.REVIEW_APPROVE, "Leave Application", "leave/request", "LV"),
}

_S = RequestStatus

_REACHABLE: Dict[WorkflowKind, Dict[RequestStatus, FrozenSet[RequestStatus]]] = {
    WorkflowKind.REVIEW_APPROVE: {
        _S.DRAFT: frozenset({_S.PENDING}),
        _S.PENDING: frozenset({_S.REVIEWED, _S.APPROVED, _S.REJECTED, _S.DRAFT}),
        _S.REVIEWED: frozenset({_S.APPROVED, _S.REJECTED, _S.PENDING, _S.DRAFT}),
        _S.APPROVED: frozenset({_S.REJECTED, _S.PENDING, _S.REVIEWED}),
        _S.REJECTED: frozenset({_S.PENDING, _S.REVIEWED}),
    },
    WorkflowKind.SIMPLE: {
        _S.DRAFT: frozenset({_S.PENDING}),
        _S.PENDING: frozenset({_S.APPROVED, _S.REJECTED, _S.DRAFT}),
        _S.APPROVED: frozenset({_S.REJECTED, _S.PENDING}),
        _S.REJECTED: frozenset({_S.PENDING}),
    },
    # reviewed and sub-status driven rejections are derived, never written
    WorkflowKind.DUAL_REVIEW: {
        _S.DRAFT: frozenset({_S.PENDING}),
        _S.PENDING: frozenset(),
        _S.REVIEWED: frozenset({_S.APPROVED, _S.REJECTED}),
        _S.APPROVED: frozenset(),
        _S.REJECTED: frozenset({_S.PENDING}),
    },
}


def get_workflow(request_type: RequestType) -> RequestWorkflow:
    try:
        return REQUEST_WORKFLOWS[RequestType(request_type)]
    except (KeyError, ValueError):
        raise NotFoundError(f"Unknown request type: {request_type}")


def allowed_statuses(kind: WorkflowKind) -> FrozenSet[RequestStatus]:
    return frozenset(_REACHABLE[kind].keys())


def reachable_statuses(kind: WorkflowKind, current: RequestStatus) -> FrozenSet[RequestStatus]:
    return _REACHABLE[kind].get(RequestStatus(current), frozenset())


def workflow_for_document(document: RequestDocument) -> RequestWorkflow:
    for workflow in REQUEST_WORKFLOWS.values():
        if type(document) is workflow.model:
            return workflow
    raise NotFoundError(f"No workflow registered for {type(document).__name__}")
