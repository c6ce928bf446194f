from typing import Optional, List, Dict, Any
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.models.shared.enums import RequestStatus, ReviewStatus


class StatusChange(BaseModel):
    """Body of a status update: target status, optional comment, sub-statuses."""
    status: Optional[str] = None
    comment: Optional[str] = None
    approved_by: Optional[int] = None  # approver assigned when marking reviewed
    reviewed_by: Optional[int] = None  # reviewer reassigned on resubmission
    finance_review_status: Optional[str] = None
    procurement_review_status: Optional[str] = None

    @field_validator("status", "finance_review_status", "procurement_review_status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        if hasattr(v, "value"):
            return v.value
        return v

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v):
        if v is None:
            return None
        return v.strip() or None


class RequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    amount: Optional[Decimal] = None
    details: Optional[Dict[str, Any]] = None
    reviewed_by: Optional[int] = None
    approved_by: Optional[int] = None
    finance_reviewer_id: Optional[int] = None
    procurement_reviewer_id: Optional[int] = None


class CommentResponse(BaseModel):
    id: int
    user_id: int
    text: str
    is_edited: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    request_type: str
    reference: Optional[str] = None
    title: Optional[str] = None
    status: RequestStatus
    creator_id: int
    reviewed_by: Optional[int] = None
    approved_by: Optional[int] = None
    amount: Optional[Decimal] = None
    details: Optional[Dict[str, Any]] = None
    # soft-deleted comments never leave the service layer
    comments: List[CommentResponse] = Field(default_factory=list, validation_alias="visible_comments")
    copied_to: List[int] = Field(default_factory=list, validation_alias="copied_to_ids")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PurchaseRequestResponse(RequestResponse):
    finance_reviewer_id: Optional[int] = None
    procurement_reviewer_id: Optional[int] = None
    finance_review_status: Optional[ReviewStatus] = None
    procurement_review_status: Optional[ReviewStatus] = None
