from sqlalchemy import Column, Integer, String, Text, Date, Enum as SQLEnum
from app.models.shared.enums import LeaveType, RequestType
from app.models.workflow.request_document import RequestDocument

class Leave(RequestDocument):
    """Leave application; creator_id is the staff member taking the leave."""

    leave_type = Column(SQLEnum(LeaveType, name="leave_type"))
    start_date = Column(Date)
    end_date = Column(Date)
    total_days_applied = Column(Integer, default=0)
    leave_balance_at_application = Column(Integer, default=0)  # snapshot
    amount_accrued_leave = Column(Integer, default=0)  # days consumed once approved
    ledger_year = Column(Integer)  # balance year its days were last counted in
    reason_for_leave = Column(Text)
    contact_during_leave = Column(String(255))
    leave_cover_name = Column(String(255))

    __mapper_args__ = {"polymorphic_identity": RequestType.LEAVE.value}
