"""Role based visibility of request documents."""
from sqlalchemy import and_, or_
from app.models.auth.user import User
from app.models.procurement.purchase_request import PurchaseRequest
from app.models.shared.enums import RequestStatus, UserRole


def visibility_clause(model, user: User):
    """WHERE clause selecting the documents of ``model`` that ``user`` may see"""
    own = model.creator_id == user.id
    copied = model.copied_to.any(User.id == user.id)

    if user.role == UserRole.SUPER_ADMIN:
        return or_(model.status != RequestStatus.DRAFT, own, copied)

    assigned = []
    if user.role in (UserRole.REVIEWER, UserRole.ADMIN):
        assigned.append(model.reviewed_by == user.id)
    if user.role == UserRole.ADMIN:
        assigned.append(model.approved_by == user.id)
    if issubclass(model, PurchaseRequest):
        assigned.append(model.finance_reviewer_id == user.id)
        assigned.append(model.procurement_reviewer_id == user.id)

    clauses = [own, copied]
    if assigned:
        # other people's drafts stay private even when pre-assigned
        clauses.append(and_(model.status != RequestStatus.DRAFT, or_(*assigned)))
    return or_(*clauses)


def can_view(document, user: User) -> bool:
    """Python side twin of ``visibility_clause`` for an already loaded document"""
    if document.creator_id == user.id or user.id in document.copied_to_ids:
        return True
    if document.status == RequestStatus.DRAFT:
        return False
    if user.role == UserRole.SUPER_ADMIN:
        return True

    assigned = set()
    if user.role in (UserRole.REVIEWER, UserRole.ADMIN):
        assigned.add(document.reviewed_by)
    if user.role == UserRole.ADMIN:
        assigned.add(document.approved_by)
    if isinstance(document, PurchaseRequest):
        assigned.update({document.finance_reviewer_id, document.procurement_reviewer_id})
    return user.id in assigned
