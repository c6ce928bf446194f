from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Enum as SQLEnum
from app.db.base import BaseModel
from app.models.shared.enums import LeaveType

class LeaveBalance(BaseModel):
    """Running balance for one user and one leave type in the current year."""
    __tablename__ = 'leave_balances'
    __table_args__ = (
        UniqueConstraint('user_id', 'leave_type', name='uq_leave_balance_user_type'),
    )

    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, name="leave_type"), nullable=False)
    max_days = Column(Integer, nullable=False)
    total_applied = Column(Integer, default=0, nullable=False)  # reserved, not yet decided
    accrued = Column(Integer, default=0, nullable=False)  # consumed by approved leave
    balance = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)  # last reset year
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self):
        return (
            f"<LeaveBalance user={self.user_id} {self.leave_type}: "
            f"{self.balance}/{self.max_days} applied={self.total_applied} accrued={self.accrued}>"
        )
