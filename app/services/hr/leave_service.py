import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from app.core.exceptions import (
    ConcurrencyConflictError,
    InternalServiceError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.models.auth.user import User
from app.models.hr.leave import Leave
from app.models.hr.leave_balance import LeaveBalance
from app.models.shared.enums import LeaveType, RequestStatus, RequestType, UserRole
from app.schemas.hr.leave_schema import LeaveCreate, LeaveDraft, LeaveStats, LeaveUpdate
from app.schemas.workflow.request_schema import StatusChange
from app.services.hr.leave_ledger import (
    LEAVE_TYPE_CONFIG,
    apply_transition,
    days_for,
    ensure_current_year,
    new_balance_rows,
    validate_application,
)
from app.services.notification.notification_service import NotificationService
from app.services.system.system_settings_service import SystemSettingsService
from app.services.workflow.copy_service import copy_service_for
from app.services.workflow.registry import get_workflow
from app.services.workflow.status_transition import TransitionResult, WorkflowPolicy, transition
from app.services.workflow.visibility import can_view, visibility_clause
from app.services.workflow.workflow_service import abort_unit_of_work, next_reference

logger = logging.getLogger(__name__)

_RESERVED_STATUSES = (RequestStatus.PENDING, RequestStatus.REVIEWED)
_EDITABLE_STATUSES = (RequestStatus.DRAFT, RequestStatus.PENDING)


class LeaveService:
    """Leave applications, their status workflow and the per-type balance ledger"""

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[NotificationService] = None,
        policy: Optional[WorkflowPolicy] = None,
    ):
        self.session = session
        self.notifier = notifier or NotificationService(session)
        self.policy = policy
        self.workflow = get_workflow(RequestType.LEAVE)

    async def _get_policy(self) -> WorkflowPolicy:
        if self.policy is not None:
            return self.policy
        snapshot = await SystemSettingsService(self.session).get_snapshot()
        return WorkflowPolicy.from_snapshot(snapshot)

    async def _abort(self, *keep):
        await abort_unit_of_work(self.session, *keep)

    async def _commit(self):
        try:
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            logger.warning("Leave balance changed concurrently, transaction rolled back")
            raise ConcurrencyConflictError()

    async def _load_leave(self, leave_id: int) -> Leave:
        result = await self.session.execute(
            select(Leave).where(Leave.id == leave_id, Leave.is_deleted == False)
        )
        leave = result.scalar_one_or_none()
        if not leave:
            raise NotFoundError("Leave application not found")
        return leave

    # ---- balances ----

    async def get_or_create_balances(self, user_id: int, today: Optional[date] = None) -> Dict[LeaveType, LeaveBalance]:
        """
        Balance rows of ``user_id`` keyed by leave type.

        Missing rows are created and rows from a previous year are reset; either
        change is committed straight away so later failures in the same call
        never undo it.
        """
        today = today or date.today()
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.is_deleted == False
            )
        )
        balances = {LeaveType(row.leave_type): row for row in result.scalars().all()}

        created = new_balance_rows(user_id, today.year, existing=balances.keys())
        for row in created:
            self.session.add(row)
            balances[LeaveType(row.leave_type)] = row

        reset = ensure_current_year(balances.values(), today)
        if created or reset:
            await self._commit()
            if created:
                logger.info(f"Created {len(created)} leave balance row(s) for user {user_id}")
        return balances

    async def get_user_leave_balance(self, user_id: int, today: Optional[date] = None) -> List[LeaveBalance]:
        balances = await self.get_or_create_balances(user_id, today)
        return [balances[leave_type] for leave_type in LEAVE_TYPE_CONFIG if leave_type in balances]

    # ---- applications ----

    async def get_leave(self, leave_id: int, actor: Optional[User] = None) -> Leave:
        leave = await self._load_leave(leave_id)
        if actor is not None and not can_view(leave, actor):
            raise UnauthorizedError("You do not have access to this leave application")
        return leave

    async def list_leaves(
        self,
        actor: User,
        page_index: int = 1,
        page_size: int = 10,
        status: Optional[RequestStatus] = None,
    ) -> Dict[str, Any]:
        conditions = [
            Leave.request_type == RequestType.LEAVE.value,
            Leave.is_deleted == False,
            visibility_clause(Leave, actor),
        ]
        if status:
            conditions.append(Leave.status == RequestStatus(status))

        total_count = await self.session.scalar(select(func.count(Leave.id)).where(*conditions))

        skip = (page_index - 1) * page_size
        leaves = await self.session.scalars(
            select(Leave).where(*conditions).order_by(Leave.id.desc()).offset(skip).limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total_count or 0,
            "data": leaves.all()
        }

    async def _new_leave(self, actor: User, data: LeaveDraft, today: date) -> Leave:
        reference = await next_reference(self.session, self.workflow.reference_prefix, today.year)
        leave_type = LeaveType(data.leave_type) if data.leave_type else None
        return Leave(
            reference=reference,
            title=f"{leave_type.value} application" if leave_type else "Leave application",
            leave_type=leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days_applied=0,
            leave_balance_at_application=0,
            amount_accrued_leave=0,
            reason_for_leave=data.reason_for_leave,
            contact_during_leave=data.contact_during_leave,
            leave_cover_name=data.leave_cover_name,
            creator_id=actor.id,
            reviewed_by=data.reviewed_by,
            approved_by=data.approved_by,
            status=RequestStatus.DRAFT,
            comments=[],
            copied_to=[],
            created_by=actor.id,
        )

    def _prepare_submission(self, leave: Leave, balances: Dict[LeaveType, LeaveBalance]) -> Tuple[LeaveBalance, int]:
        """Count the days of ``leave`` and check them against its balance"""
        if not (leave.leave_type and leave.start_date and leave.end_date):
            raise ValidationError("Leave type, start date and end date are required to submit")
        balance = balances[LeaveType(leave.leave_type)]
        days = days_for(leave.leave_type, leave.start_date, leave.end_date)
        validate_application(balance, days)
        return balance, days

    async def apply_for_leave(self, actor: User, data: LeaveCreate, today: Optional[date] = None) -> Leave:
        """Create and submit a leave application, reserving its days"""
        today = today or date.today()
        try:
            balances = await self.get_or_create_balances(actor.id, today)
            policy = await self._get_policy()
            leave = await self._new_leave(actor, data, today)

            balance, days = self._prepare_submission(leave, balances)
            leave.total_days_applied = days
            leave.leave_balance_at_application = balance.balance

            result = transition(leave, StatusChange(status=RequestStatus.PENDING.value), actor, policy, self.workflow.kind)
            apply_transition(balance, days, None, RequestStatus.PENDING)
            leave.ledger_year = balance.year

            self.session.add(leave)
            await self._commit()

            logger.info(
                f"Leave {leave.reference} applied by user {actor.id}: {days} day(s) of "
                f"{leave.leave_type.value}, balance now {balance.balance}"
            )

        except HTTPException:
            await self._abort(actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error applying for leave: {str(e)}")
            raise InternalServiceError("Error applying for leave")

        await self.notifier.dispatch(result.notifications, leave, self.workflow.url_path, actor)
        return leave

    async def save_leave_draft(self, actor: User, data: LeaveDraft, today: Optional[date] = None) -> Leave:
        """Save a draft; drafts never touch the ledger"""
        today = today or date.today()
        try:
            leave = await self._new_leave(actor, data, today)
            if leave.leave_type and leave.start_date and leave.end_date:
                leave.total_days_applied = days_for(leave.leave_type, leave.start_date, leave.end_date)

            self.session.add(leave)
            await self._commit()

            logger.info(f"Leave draft {leave.reference} saved by user {actor.id}")
            return leave

        except HTTPException:
            await self._abort(actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error saving leave draft: {str(e)}")
            raise InternalServiceError("Error saving leave draft")

    async def submit_leave_draft(self, leave_id: int, actor: User, today: Optional[date] = None) -> TransitionResult:
        return await self.update_leave_status(
            leave_id, StatusChange(status=RequestStatus.PENDING.value), actor, today
        )

    async def update_leave_application(
        self,
        leave_id: int,
        data: LeaveUpdate,
        actor: User,
        today: Optional[date] = None,
    ) -> Leave:
        """Edit a draft or pending leave; a pending one moves its reservation"""
        today = today or date.today()
        try:
            leave = await self._load_leave(leave_id)
            if leave.creator_id != actor.id:
                raise UnauthorizedError("Only the applicant can update this leave application")
            if leave.status not in _EDITABLE_STATUSES:
                raise InvalidTransitionError(f"Cannot update a {leave.status.value} leave application")

            balances = await self.get_or_create_balances(leave.creator_id, today)
            old_type, old_days = leave.leave_type, leave.total_days_applied or 0

            updates = data.model_dump(exclude_unset=True)
            for field, value in updates.items():
                setattr(leave, field, value)
            if "leave_type" in updates and leave.leave_type:
                leave.title = f"{LeaveType(leave.leave_type).value} application"

            if leave.status == RequestStatus.PENDING:
                apply_transition(
                    balances[LeaveType(old_type)], old_days,
                    RequestStatus.PENDING, RequestStatus.DRAFT, leave.ledger_year,
                )
                balance, days = self._prepare_submission(leave, balances)
                apply_transition(balance, days, RequestStatus.DRAFT, RequestStatus.PENDING)
                leave.total_days_applied = days
                leave.ledger_year = balance.year
                leave.leave_balance_at_application = balance.balance + days
            elif leave.leave_type and leave.start_date and leave.end_date:
                leave.total_days_applied = days_for(leave.leave_type, leave.start_date, leave.end_date)

            leave.updated_by = actor.id
            await self._commit()

            logger.info(f"Leave {leave.reference} updated by user {actor.id}")
            return leave

        except HTTPException:
            await self._abort(actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating leave {leave_id}: {str(e)}")
            raise InternalServiceError("Error updating leave application")

    async def update_leave_status(
        self,
        leave_id: int,
        change: StatusChange,
        actor: User,
        today: Optional[date] = None,
    ) -> TransitionResult:
        """
        Run the status machine and the ledger as one unit of work.

        An ``InsufficientBalanceError`` or a concurrent balance update rolls
        back both the status change and the balance.
        """
        today = today or date.today()
        try:
            leave = await self._load_leave(leave_id)
            balances = await self.get_or_create_balances(leave.creator_id, today)
            policy = await self._get_policy()

            previous = RequestStatus(leave.status)
            submitting = previous == RequestStatus.DRAFT and change.status == RequestStatus.PENDING.value
            if submitting:
                balance, days = self._prepare_submission(leave, balances)
            elif leave.leave_type:
                balance, days = balances[LeaveType(leave.leave_type)], leave.total_days_applied or 0
            else:
                balance, days = None, 0

            result = transition(leave, change, actor, policy, self.workflow.kind)

            if result.changed and balance is not None:
                if result.new_status == RequestStatus.PENDING and previous == RequestStatus.DRAFT:
                    leave.total_days_applied = days
                    leave.leave_balance_at_application = balance.balance
                apply_transition(balance, days, previous, result.new_status, leave.ledger_year)
                leave.ledger_year = balance.year
                leave.amount_accrued_leave = days if result.new_status == RequestStatus.APPROVED else 0

            await self._commit()

            if result.changed and balance is not None:
                logger.info(
                    f"Leave {leave.reference} ledger {previous.value} -> {result.new_status.value}: "
                    f"applied={balance.total_applied} accrued={balance.accrued} balance={balance.balance}"
                )

        except HTTPException:
            await self._abort(actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating status of leave {leave_id}: {str(e)}")
            raise InternalServiceError("Error updating leave status")

        await self.notifier.dispatch(result.notifications, leave, self.workflow.url_path, actor)
        return result

    async def delete_leave(self, leave_id: int, actor: User, today: Optional[date] = None) -> bool:
        """Soft delete; a pending or reviewed leave gives its days back first"""
        today = today or date.today()
        try:
            leave = await self._load_leave(leave_id)
            if leave.creator_id != actor.id and actor.role != UserRole.SUPER_ADMIN:
                raise UnauthorizedError("Only the applicant can delete this leave application")
            if leave.status == RequestStatus.APPROVED:
                raise InvalidTransitionError("Approved leave cannot be deleted, reject it instead")

            if leave.status in _RESERVED_STATUSES and leave.leave_type:
                balances = await self.get_or_create_balances(leave.creator_id, today)
                apply_transition(
                    balances[LeaveType(leave.leave_type)],
                    leave.total_days_applied or 0,
                    leave.status,
                    RequestStatus.DRAFT,
                    leave.ledger_year,
                )

            leave.is_deleted = True
            leave.updated_by = actor.id
            await self._commit()

            logger.info(f"Leave {leave.reference} deleted by user {actor.id}")
            return True

        except HTTPException:
            await self._abort(actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting leave {leave_id}: {str(e)}")
            raise InternalServiceError("Error deleting leave application")

    async def get_leave_stats(self, actor: User) -> LeaveStats:
        """Counts per status and approved days; every applicant for super admins"""
        conditions = [
            Leave.request_type == RequestType.LEAVE.value,
            Leave.is_deleted == False,
            Leave.status != RequestStatus.DRAFT,
        ]
        if actor.role != UserRole.SUPER_ADMIN:
            conditions.append(Leave.creator_id == actor.id)

        result = await self.session.execute(
            select(
                Leave.status,
                func.count(Leave.id),
                func.coalesce(func.sum(Leave.total_days_applied), 0),
            )
            .where(*conditions)
            .group_by(Leave.status)
        )

        stats = LeaveStats()
        for status, count, days in result.all():
            status = RequestStatus(status)
            stats.total_requests += count
            if status == RequestStatus.PENDING:
                stats.total_pending_requests = count
            elif status == RequestStatus.REVIEWED:
                stats.total_reviewed_requests = count
            elif status == RequestStatus.APPROVED:
                stats.total_approved_requests = count
                stats.total_days_approved = int(days or 0)
            elif status == RequestStatus.REJECTED:
                stats.total_rejected_requests = count
        return stats

    async def copy_leave(self, leave_id: int, actor: User, recipient_ids: List[int]) -> Leave:
        service = copy_service_for(RequestType.LEAVE, self.session, self.notifier)
        return await service.copy_document(leave_id, actor, recipient_ids)
