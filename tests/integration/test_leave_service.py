import pytest
from datetime import date
from sqlalchemy.orm.exc import StaleDataError
from app.core.exceptions import (
    ConcurrencyConflictError,
    InsufficientBalanceError,
    InvalidTransitionError,
    ValidationError,
)
from app.models.shared.enums import LeaveType, NotificationReason, RequestStatus
from app.schemas.hr.leave_schema import LeaveCreate, LeaveDraft, LeaveResponse, LeaveUpdate
from app.schemas.workflow.request_schema import StatusChange
from app.services.hr.leave_service import LeaveService
from tests.conftest import TODAY

MONDAY = TODAY
FRIDAY = date(2026, 10, 23)


@pytest.fixture
def leave_service(session, notifier, policy):
    return LeaveService(session, notifier, policy)


def annual_leave(users, start=MONDAY, end=FRIDAY, leave_type=LeaveType.ANNUAL):
    return LeaveCreate(
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reviewed_by=users["reviewer"].id,
        approved_by=users["approver"].id,
        reason_for_leave="Family visit",
    )


async def balance_of(service, user_id, leave_type=LeaveType.ANNUAL, today=TODAY):
    rows = await service.get_user_leave_balance(user_id, today)
    return next(row for row in rows if row.leave_type == leave_type)


async def test_balances_created_lazily(leave_service, users):
    rows = await leave_service.get_user_leave_balance(users["staff"].id, TODAY)

    assert [row.leave_type for row in rows] == list(LeaveType)
    annual = rows[0]
    assert (annual.max_days, annual.total_applied, annual.accrued, annual.balance, annual.year) == (24, 0, 0, 24, 2026)

    again = await leave_service.get_user_leave_balance(users["staff"].id, TODAY)
    assert [row.id for row in again] == [row.id for row in rows]


async def test_annual_leave_scenario(leave_service, users, transport):
    staff, reviewer, admin = users["staff"], users["reviewer"], users["admin"]

    leave = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)
    assert leave.status == RequestStatus.PENDING
    assert leave.total_days_applied == 5
    assert leave.leave_balance_at_application == 24
    assert leave.reference == "LV-2026-0001"
    balance = await balance_of(leave_service, staff.id)
    assert (balance.total_applied, balance.accrued, balance.balance) == (5, 0, 19)
    assert transport.recipients_for(NotificationReason.ASSIGNED) == [reviewer.id]

    await leave_service.update_leave_status(leave.id, StatusChange(status="approved"), reviewer, TODAY)
    balance = await balance_of(leave_service, staff.id)
    assert (balance.total_applied, balance.accrued, balance.balance) == (0, 5, 19)
    assert leave.amount_accrued_leave == 5

    result = await leave_service.update_leave_status(
        leave.id, StatusChange(status="rejected", comment="Clashes with the audit"), admin, TODAY
    )
    balance = await balance_of(leave_service, staff.id)
    assert (balance.total_applied, balance.accrued, balance.balance) == (0, 0, 24)
    assert result.new_status == RequestStatus.REJECTED
    assert leave.visible_comments[0].text == "Clashes with the audit"
    assert staff.id in transport.recipients_for(NotificationReason.REJECTED)


async def test_application_over_balance_rejected(leave_service, users):
    staff = users["staff"]
    await leave_service.apply_for_leave(
        staff, annual_leave(users, MONDAY, FRIDAY, LeaveType.EMERGENCY), TODAY
    )

    with pytest.raises(InsufficientBalanceError):
        await leave_service.apply_for_leave(
            staff, annual_leave(users, date(2026, 10, 26), date(2026, 10, 26), LeaveType.EMERGENCY), TODAY
        )

    balance = await balance_of(leave_service, staff.id, LeaveType.EMERGENCY)
    assert (balance.total_applied, balance.balance) == (5, 0)


async def test_failed_ledger_rolls_back_status_change(leave_service, users):
    staff, reviewer = users["staff"], users["reviewer"]

    first = await leave_service.apply_for_leave(
        staff, annual_leave(users, MONDAY, date(2026, 10, 21), LeaveType.EMERGENCY), TODAY
    )
    first_id = first.id
    await leave_service.update_leave_status(first_id, StatusChange(status="rejected"), reviewer, TODAY)
    await leave_service.apply_for_leave(
        staff, annual_leave(users, date(2026, 10, 26), date(2026, 10, 28), LeaveType.EMERGENCY), TODAY
    )

    with pytest.raises(InsufficientBalanceError):
        await leave_service.update_leave_status(
            first_id, StatusChange(status="pending", reviewed_by=reviewer.id, comment="Resubmitting"), staff, TODAY
        )

    reloaded = await leave_service.get_leave(first_id)
    assert reloaded.status == RequestStatus.REJECTED
    assert reloaded.reviewed_by is None
    assert reloaded.visible_comments == []
    balance = await balance_of(leave_service, staff.id, LeaveType.EMERGENCY)
    assert (balance.total_applied, balance.accrued, balance.balance) == (3, 0, 2)
    assert staff.full_name == "Amina Bello"


async def test_unauthorized_decision_is_dropped(leave_service, users):
    leave = await leave_service.apply_for_leave(users["staff"], annual_leave(users), TODAY)

    result = await leave_service.update_leave_status(
        leave.id, StatusChange(status="approved", comment="approved!"), users["outsider"], TODAY
    )

    assert result.dropped_reason
    assert leave.status == RequestStatus.PENDING
    assert [c.text for c in leave.visible_comments] == ["approved!"]
    balance = await balance_of(leave_service, users["staff"].id)
    assert (balance.total_applied, balance.accrued) == (5, 0)


async def test_draft_then_submit(leave_service, users):
    staff = users["staff"]
    draft = await leave_service.save_leave_draft(
        staff,
        LeaveDraft(leave_type=LeaveType.SICK, start_date=MONDAY, end_date=date(2026, 10, 20),
                   reviewed_by=users["reviewer"].id),
        TODAY,
    )
    assert draft.status == RequestStatus.DRAFT
    assert draft.total_days_applied == 2
    balance = await balance_of(leave_service, staff.id, LeaveType.SICK)
    assert balance.total_applied == 0

    result = await leave_service.submit_leave_draft(draft.id, staff, TODAY)
    assert result.new_status == RequestStatus.PENDING
    balance = await balance_of(leave_service, staff.id, LeaveType.SICK)
    assert (balance.total_applied, balance.balance) == (2, 10)
    assert draft.leave_balance_at_application == 12


async def test_submitting_incomplete_draft_fails(leave_service, users):
    draft = await leave_service.save_leave_draft(users["staff"], LeaveDraft(reason_for_leave="tbc"), TODAY)
    with pytest.raises(ValidationError):
        await leave_service.submit_leave_draft(draft.id, users["staff"], TODAY)


async def test_rescheduling_pending_leave_moves_reservation(leave_service, users):
    staff = users["staff"]
    leave = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)

    await leave_service.update_leave_application(
        leave.id, LeaveUpdate(start_date=MONDAY, end_date=date(2026, 10, 21)), staff, TODAY
    )

    assert leave.total_days_applied == 3
    balance = await balance_of(leave_service, staff.id)
    assert (balance.total_applied, balance.balance) == (3, 21)


async def test_switching_leave_type_moves_reservation(leave_service, users):
    staff = users["staff"]
    leave = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)

    await leave_service.update_leave_application(leave.id, LeaveUpdate(leave_type=LeaveType.STUDY), staff, TODAY)

    assert leave.title == "Study Leave application"
    assert (await balance_of(leave_service, staff.id)).total_applied == 0
    assert (await balance_of(leave_service, staff.id, LeaveType.STUDY)).total_applied == 5


async def test_delete_releases_reservation(leave_service, users):
    staff = users["staff"]
    leave = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)

    assert await leave_service.delete_leave(leave.id, staff, TODAY) is True

    balance = await balance_of(leave_service, staff.id)
    assert (balance.total_applied, balance.balance) == (0, 24)


async def test_approved_leave_cannot_be_deleted(leave_service, users):
    staff = users["staff"]
    leave = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)
    await leave_service.update_leave_status(leave.id, StatusChange(status="approved"), users["reviewer"], TODAY)

    with pytest.raises(InvalidTransitionError):
        await leave_service.delete_leave(leave.id, staff, TODAY)


async def test_year_rollover_resets_balances(leave_service, users):
    staff = users["staff"]
    last_year = date(2025, 6, 2)
    await leave_service.apply_for_leave(staff, annual_leave(users, last_year, date(2025, 6, 6)), last_year)
    assert (await balance_of(leave_service, staff.id, today=last_year)).balance == 19

    balance = await balance_of(leave_service, staff.id, today=TODAY)
    assert (balance.total_applied, balance.accrued, balance.balance, balance.year) == (0, 0, 24, 2026)


async def test_leave_stats(leave_service, users):
    staff, reviewer = users["staff"], users["reviewer"]
    approved = await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)
    await leave_service.update_leave_status(approved.id, StatusChange(status="approved"), reviewer, TODAY)
    await leave_service.apply_for_leave(
        staff, annual_leave(users, date(2026, 10, 26), date(2026, 10, 27), LeaveType.SICK), TODAY
    )
    await leave_service.save_leave_draft(staff, LeaveDraft(reason_for_leave="later"), TODAY)

    stats = await leave_service.get_leave_stats(staff)
    assert stats.total_requests == 2
    assert stats.total_pending_requests == 1
    assert stats.total_approved_requests == 1
    assert stats.total_days_approved == 5

    assert (await leave_service.get_leave_stats(users["outsider"])).total_requests == 0
    assert (await leave_service.get_leave_stats(users["admin"])).total_requests == 2


async def test_leave_visibility(leave_service, users):
    leave = await leave_service.apply_for_leave(users["staff"], annual_leave(users), TODAY)

    assert (await leave_service.list_leaves(users["staff"]))["count"] == 1
    assert (await leave_service.list_leaves(users["reviewer"]))["count"] == 1
    assert (await leave_service.list_leaves(users["outsider"]))["count"] == 0

    await leave_service.copy_leave(leave.id, users["staff"], [users["outsider"].id])
    page = await leave_service.list_leaves(users["outsider"])
    assert [item.id for item in page["data"]] == [leave.id]


async def test_concurrent_balance_update_maps_to_conflict(leave_service, session, users, monkeypatch):
    staff = users["staff"]
    await leave_service.get_user_leave_balance(staff.id, TODAY)

    async def stale_commit():
        raise StaleDataError("UPDATE statement on table 'leave_balances' expected to update 1 row(s); 0 were matched.")

    monkeypatch.setattr(session, "commit", stale_commit)

    with pytest.raises(ConcurrencyConflictError):
        await leave_service.apply_for_leave(staff, annual_leave(users), TODAY)
    assert staff.email == "amina.bello@casfod.org"


async def test_response_schema(leave_service, users):
    leave = await leave_service.apply_for_leave(users["staff"], annual_leave(users), TODAY)
    response = LeaveResponse.model_validate(leave)
    assert response.leave_type == LeaveType.ANNUAL
    assert response.total_days_applied == 5
    assert response.status == RequestStatus.PENDING


async def test_accrued_days_belong_to_each_leave(leave_service, users):
    staff, reviewer = users["staff"], users["reviewer"]
    first = await leave_service.apply_for_leave(staff, annual_leave(users, MONDAY, date(2026, 10, 20)), TODAY)
    await leave_service.update_leave_status(first.id, StatusChange(status="approved"), reviewer, TODAY)

    second = await leave_service.apply_for_leave(staff, annual_leave(users, date(2026, 10, 21), FRIDAY), TODAY)
    assert second.amount_accrued_leave == 0

    await leave_service.update_leave_status(second.id, StatusChange(status="approved"), reviewer, TODAY)
    assert (first.amount_accrued_leave, second.amount_accrued_leave) == (2, 3)
    assert (await balance_of(leave_service, staff.id)).accrued == 5

    await leave_service.update_leave_status(second.id, StatusChange(status="rejected"), users["admin"], TODAY)
    assert second.amount_accrued_leave == 0


DECEMBER = date(2025, 12, 22)
JANUARY = date(2026, 1, 5)


async def test_leave_pending_at_new_year_can_still_be_decided(leave_service, users):
    staff = users["staff"]
    leave = await leave_service.apply_for_leave(staff, annual_leave(users, DECEMBER, date(2025, 12, 24)), DECEMBER)
    assert leave.ledger_year == 2025

    await leave_service.update_leave_status(leave.id, StatusChange(status="approved"), users["reviewer"], JANUARY)
    balance = await balance_of(leave_service, staff.id, today=JANUARY)
    assert (balance.total_applied, balance.accrued, balance.balance, balance.year) == (0, 3, 21, 2026)
    assert leave.amount_accrued_leave == 3
    assert leave.ledger_year == 2026

    await leave_service.update_leave_status(leave.id, StatusChange(status="rejected"), users["admin"], JANUARY)
    balance = await balance_of(leave_service, staff.id, today=JANUARY)
    assert (balance.total_applied, balance.accrued, balance.balance) == (0, 0, 24)


async def test_leave_pending_at_new_year_can_be_rejected_or_deleted(leave_service, users):
    staff = users["staff"]
    rejected = await leave_service.apply_for_leave(
        staff, annual_leave(users, DECEMBER, date(2025, 12, 24)), DECEMBER
    )
    withdrawn = await leave_service.apply_for_leave(
        staff, annual_leave(users, date(2025, 12, 29), date(2025, 12, 31)), DECEMBER
    )

    result = await leave_service.update_leave_status(
        rejected.id, StatusChange(status="rejected"), users["reviewer"], JANUARY
    )
    assert result.new_status == RequestStatus.REJECTED
    assert await leave_service.delete_leave(withdrawn.id, staff, JANUARY) is True

    balance = await balance_of(leave_service, staff.id, today=JANUARY)
    assert (balance.total_applied, balance.accrued, balance.balance) == (0, 0, 24)
