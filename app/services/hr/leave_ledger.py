"""
Leave balance ledger.

Pure functions over ``LeaveBalance`` rows: day counting, the per-status
debit/credit table, year rollover and application checks. The leave service
calls these inside its unit of work; nothing here touches the session.
"""
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from app.core.exceptions import InsufficientBalanceError, ValidationError
from app.models.hr.leave_balance import LeaveBalance
from app.models.shared.enums import LeaveType, RequestStatus

logger = logging.getLogger(__name__)


class LeaveTypeConfig(NamedTuple):
    max_days: int
    is_calendar_days: bool


LEAVE_TYPE_CONFIG: Dict[LeaveType, LeaveTypeConfig] = {
    LeaveType.ANNUAL: LeaveTypeConfig(24, False),
    LeaveType.COMPASSIONATE: LeaveTypeConfig(10, False),
    LeaveType.SICK: LeaveTypeConfig(12, False),
    LeaveType.MATERNITY: LeaveTypeConfig(90, False),
    LeaveType.PATERNITY: LeaveTypeConfig(14, True),
    LeaveType.EMERGENCY: LeaveTypeConfig(5, False),
    LeaveType.STUDY: LeaveTypeConfig(10, False),
    LeaveType.WITHOUT_PAY: LeaveTypeConfig(365, True),
}

_S = RequestStatus

# (from, to) -> (total_applied delta, accrued delta), in multiples of the leave days.
# ``None`` as the source status means the application did not exist yet.
_LEDGER_TABLE: Dict[Tuple[Optional[RequestStatus], RequestStatus], Tuple[int, int]] = {
    (None, _S.PENDING): (1, 0),
    (_S.DRAFT, _S.PENDING): (1, 0),
    (_S.PENDING, _S.APPROVED): (-1, 1),
    (_S.REVIEWED, _S.APPROVED): (-1, 1),
    (_S.PENDING, _S.REJECTED): (-1, 0),
    (_S.REVIEWED, _S.REJECTED): (-1, 0),
    (_S.PENDING, _S.DRAFT): (-1, 0),
    (_S.REVIEWED, _S.DRAFT): (-1, 0),
    (_S.APPROVED, _S.REJECTED): (0, -1),
    (_S.APPROVED, _S.PENDING): (1, -1),
    (_S.APPROVED, _S.REVIEWED): (1, -1),
    (_S.REJECTED, _S.PENDING): (1, 0),
    (_S.REJECTED, _S.REVIEWED): (1, 0),
    (_S.REJECTED, _S.APPROVED): (0, 1),
}


def get_leave_config(leave_type) -> LeaveTypeConfig:
    try:
        return LEAVE_TYPE_CONFIG[LeaveType(leave_type)]
    except (KeyError, ValueError):
        raise ValidationError(f"Invalid leave type: {leave_type}")


def count_leave_days(start_date: date, end_date: date, is_calendar_days: bool) -> int:
    """Days between two dates inclusive; working days skip Saturday and Sunday."""
    if end_date < start_date:
        raise ValidationError("End date cannot be before start date")

    if is_calendar_days:
        return (end_date - start_date).days + 1

    days = 0
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def days_for(leave_type, start_date: date, end_date: date) -> int:
    return count_leave_days(start_date, end_date, get_leave_config(leave_type).is_calendar_days)


def ledger_delta(from_status: Optional[RequestStatus], to_status: Optional[RequestStatus]) -> Tuple[int, int]:
    """Unit deltas for a status move; pairs outside the table have no effect."""
    if from_status == to_status or to_status is None:
        return 0, 0
    key = (RequestStatus(from_status) if from_status is not None else None, RequestStatus(to_status))
    return _LEDGER_TABLE.get(key, (0, 0))


def apply_transition(
    balance: LeaveBalance,
    days: int,
    from_status: Optional[RequestStatus],
    to_status: Optional[RequestStatus],
    booked_year: Optional[int] = None,
) -> LeaveBalance:
    """
    Move ``days`` between the reserved and consumed counters of ``balance``.

    ``booked_year`` is the balance year the days were last counted in. When the
    row has been reset since then, the old days are no longer in its counters,
    so only the additions of the move are applied.

    The new counters are computed and checked first; ``InsufficientBalanceError``
    is raised with the row untouched when the balance or either counter would
    go negative.
    """
    applied_unit, accrued_unit = ledger_delta(from_status, to_status)
    if booked_year is not None and balance.year is not None and booked_year < balance.year:
        applied_unit, accrued_unit = max(applied_unit, 0), max(accrued_unit, 0)
    if not applied_unit and not accrued_unit:
        return balance

    total_applied = balance.total_applied + applied_unit * days
    accrued = balance.accrued + accrued_unit * days
    new_balance = balance.max_days - (total_applied + accrued)

    if new_balance < 0:
        raise InsufficientBalanceError(
            f"Insufficient {LeaveType(balance.leave_type).value} balance: "
            f"{days} day(s) requested, {balance.balance} available"
        )
    if total_applied < 0 or accrued < 0:
        raise InsufficientBalanceError(
            f"Leave ledger for {LeaveType(balance.leave_type).value} is out of step "
            f"(applied={total_applied}, accrued={accrued})"
        )

    balance.total_applied = total_applied
    balance.accrued = accrued
    balance.balance = new_balance
    return balance


def ensure_current_year(balances: Iterable[LeaveBalance], today: date) -> bool:
    """Reset every row last reset before ``today.year``; returns True if any changed."""
    changed = False
    for balance in balances:
        if balance.year is not None and balance.year >= today.year:
            continue
        balance.max_days = get_leave_config(balance.leave_type).max_days
        balance.total_applied = 0
        balance.accrued = 0
        balance.balance = balance.max_days
        balance.year = today.year
        changed = True
        logger.info(f"Reset {LeaveType(balance.leave_type).value} balance for user {balance.user_id} to {today.year}")
    return changed


def validate_application(balance: LeaveBalance, days: int) -> None:
    leave_type = LeaveType(balance.leave_type).value
    if days <= 0:
        raise ValidationError("Leave must cover at least one day")
    if balance.accrued >= balance.max_days:
        raise InsufficientBalanceError(f"You have exhausted your {leave_type} for this year")
    if days > balance.balance:
        raise InsufficientBalanceError(
            f"You have only {balance.balance} day(s) of {leave_type} left, {days} requested"
        )


def new_balance_rows(user_id: int, year: int, existing: Iterable[LeaveType] = ()) -> List[LeaveBalance]:
    """Fresh rows for every leave type the user does not have yet."""
    present = {LeaveType(leave_type) for leave_type in existing}
    return [
        LeaveBalance(
            user_id=user_id,
            leave_type=leave_type,
            max_days=config.max_days,
            total_applied=0,
            accrued=0,
            balance=config.max_days,
            year=year,
        )
        for leave_type, config in LEAVE_TYPE_CONFIG.items()
        if leave_type not in present
    ]
