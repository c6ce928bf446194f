from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Table, Enum as SQLEnum, JSON
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.base import Base
from app.models.shared.enums import RequestStatus, RequestType

# Users granted read access outside role-based visibility
request_copies = Table(
    "request_copies",
    Base.metadata,
    Column("request_id", Integer, ForeignKey("request_documents.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class RequestDocument(BaseModel):
    """Common shape of every request that moves through a review/approval workflow."""
    __tablename__ = "request_documents"

    request_type = Column(String(50), nullable=False, index=True)
    reference = Column(String(50), unique=True, index=True)
    title = Column(String(255))
    status = Column(SQLEnum(RequestStatus, name="request_status"), default=RequestStatus.DRAFT, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    amount = Column(Numeric(14, 2))
    details = Column(JSON)

    # Relationships
    comments = relationship(
        "RequestComment",
        back_populates="document",
        order_by="desc(RequestComment.id)",  # newest first
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    copied_to = relationship("User", secondary=request_copies, lazy="selectin")

    __mapper_args__ = {
        "polymorphic_on": request_type,
        "polymorphic_identity": "request",
    }

    @property
    def visible_comments(self):
        return [comment for comment in self.comments if not comment.is_deleted]

    @property
    def copied_to_ids(self):
        return [user.id for user in self.copied_to]

    def __repr__(self):
        return f"<{type(self).__name__} {self.reference or self.id} [{self.status}]>"


class ConceptNote(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.CONCEPT_NOTE.value}


class PaymentRequest(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.PAYMENT_REQUEST.value}


class AdvanceRequest(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.ADVANCE_REQUEST.value}


class TravelRequest(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.TRAVEL_REQUEST.value}


class ExpenseClaim(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.EXPENSE_CLAIM.value}


class PaymentVoucher(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.PAYMENT_VOUCHER.value}


class PurchaseOrder(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.PURCHASE_ORDER.value}


class StaffStrategy(RequestDocument):
    __mapper_args__ = {"polymorphic_identity": RequestType.STAFF_STRATEGY.value}
