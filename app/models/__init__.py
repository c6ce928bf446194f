from app.models.auth.user import User
from app.models.workflow.request_comment import RequestComment
from app.models.workflow.request_document import (
    RequestDocument,
    ConceptNote,
    PaymentRequest,
    AdvanceRequest,
    TravelRequest,
    ExpenseClaim,
    PaymentVoucher,
    PurchaseOrder,
    StaffStrategy,
    request_copies,
)
from app.models.procurement.purchase_request import PurchaseRequest
from app.models.hr.leave import Leave
from app.models.hr.leave_balance import LeaveBalance
from app.models.system.system_setting import SystemSetting
