from typing import Optional
from datetime import date
from pydantic import BaseModel, model_validator
from app.models.shared.enums import LeaveType
from app.schemas.workflow.request_schema import RequestResponse


class LeaveBase(BaseModel):
    reason_for_leave: Optional[str] = None
    contact_during_leave: Optional[str] = None
    leave_cover_name: Optional[str] = None
    approved_by: Optional[int] = None


class LeaveCreate(LeaveBase):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reviewed_by: int

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class LeaveDraft(LeaveBase):
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reviewed_by: Optional[int] = None


class LeaveUpdate(LeaveDraft):
    pass


class LeaveResponse(RequestResponse):
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_days_applied: Optional[int] = 0
    leave_balance_at_application: Optional[int] = 0
    amount_accrued_leave: Optional[int] = 0
    reason_for_leave: Optional[str] = None
    contact_during_leave: Optional[str] = None
    leave_cover_name: Optional[str] = None


class LeaveBalanceResponse(BaseModel):
    leave_type: LeaveType
    max_days: int
    total_applied: int
    accrued: int
    balance: int
    year: int

    class Config:
        from_attributes = True


class LeaveStats(BaseModel):
    total_requests: int = 0
    total_pending_requests: int = 0
    total_reviewed_requests: int = 0
    total_approved_requests: int = 0
    total_rejected_requests: int = 0
    total_days_approved: int = 0
