from sqlalchemy import Column, Integer, ForeignKey, Enum as SQLEnum
from app.models.shared.enums import RequestType, ReviewStatus
from app.models.workflow.request_document import RequestDocument

class PurchaseRequest(RequestDocument):
    """Purchase request reviewed in parallel by finance and procurement."""

    finance_reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    procurement_reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    finance_review_status = Column(SQLEnum(ReviewStatus, name="review_status"), default=ReviewStatus.PENDING)
    procurement_review_status = Column(SQLEnum(ReviewStatus, name="review_status"), default=ReviewStatus.PENDING)

    __mapper_args__ = {"polymorphic_identity": RequestType.PURCHASE_REQUEST.value}
