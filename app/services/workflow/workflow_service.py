import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from fastapi import HTTPException
from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InternalServiceError, NotFoundError, UnauthorizedError, ValidationError
from app.models.auth.user import User
from app.models.procurement.purchase_request import PurchaseRequest
from app.models.shared.enums import RequestStatus, RequestType, ReviewStatus
from app.models.workflow.request_document import RequestDocument
from app.schemas.workflow.request_schema import RequestCreate, StatusChange
from app.services.notification.notification_service import NotificationService
from app.services.system.system_settings_service import SystemSettingsService
from app.services.workflow.registry import RequestWorkflow, get_workflow
from app.services.workflow.status_transition import TransitionResult, WorkflowPolicy, transition
from app.services.workflow.visibility import can_view, visibility_clause

logger = logging.getLogger(__name__)

_DELETABLE_STATUSES = (RequestStatus.DRAFT, RequestStatus.REJECTED)


def _session_has_changes(session: AsyncSession) -> bool:
    return bool(session.new or session.dirty or session.deleted)


async def abort_unit_of_work(session: AsyncSession, *keep) -> None:
    """
    Roll back pending changes after a rejected operation.

    A rollback expires every instance in the session, so the ones in ``keep``
    (usually the acting user) are reloaded for the caller to go on using.
    """
    if _session_has_changes(session):
        await session.rollback()
    for instance in keep:
        if instance in session and inspect(instance).expired:
            await session.refresh(instance)


async def next_reference(session: AsyncSession, prefix: str, year: int) -> str:
    """Sequential reference per prefix and year, e.g. PR-2026-0001"""
    pattern = f"{prefix}-{year}-%"
    count = await session.scalar(
        select(func.count(RequestDocument.id)).where(RequestDocument.reference.like(pattern))
    )
    return f"{prefix}-{year}-{(count or 0) + 1:04d}"


class RequestWorkflowService:
    """Create, list and move generic request documents through their workflow"""

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[NotificationService] = None,
        policy: Optional[WorkflowPolicy] = None,
    ):
        self.session = session
        self.notifier = notifier or NotificationService(session)
        self.policy = policy

    async def _get_policy(self) -> WorkflowPolicy:
        if self.policy is not None:
            return self.policy
        snapshot = await SystemSettingsService(self.session).get_snapshot()
        return WorkflowPolicy.from_snapshot(snapshot)

    def _workflow(self, request_type: RequestType) -> RequestWorkflow:
        workflow = get_workflow(request_type)
        if RequestType(request_type) == RequestType.LEAVE:
            raise ValidationError("Leave applications are handled by the leave service")
        return workflow

    async def _load(self, workflow: RequestWorkflow, request_id: int) -> RequestDocument:
        result = await self.session.execute(
            select(workflow.model).where(
                workflow.model.id == request_id,
                workflow.model.is_deleted == False
            )
        )
        document = result.scalar_one_or_none()
        if not document:
            raise NotFoundError(f"{workflow.title} not found")
        return document

    async def create_request(
        self,
        request_type: RequestType,
        data: RequestCreate,
        actor: User,
        submit: bool = False,
    ) -> RequestDocument:
        """Save a draft, or create and submit in one go when ``submit`` is set"""
        try:
            workflow = self._workflow(request_type)
            reference = await next_reference(
                self.session, workflow.reference_prefix, datetime.now(timezone.utc).year
            )

            fields: Dict[str, Any] = dict(
                reference=reference,
                title=data.title,
                amount=data.amount,
                details=data.details,
                creator_id=actor.id,
                reviewed_by=data.reviewed_by,
                approved_by=data.approved_by,
                status=RequestStatus.DRAFT,
                comments=[],
                copied_to=[],
                created_by=actor.id,
            )
            if issubclass(workflow.model, PurchaseRequest):
                fields.update(
                    finance_reviewer_id=data.finance_reviewer_id,
                    procurement_reviewer_id=data.procurement_reviewer_id,
                    finance_review_status=ReviewStatus.PENDING,
                    procurement_review_status=ReviewStatus.PENDING,
                )
            document = workflow.model(**fields)

            result: Optional[TransitionResult] = None
            if submit:
                result = transition(
                    document, StatusChange(status=RequestStatus.PENDING.value), actor,
                    await self._get_policy(), workflow.kind,
                )

            self.session.add(document)
            await self.session.commit()

            logger.info(f"{workflow.title} {document.reference} created by user {actor.id} as {document.status.value}")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating {request_type} request: {str(e)}")
            raise InternalServiceError("Error creating request")

        if result is not None:
            await self.notifier.dispatch(result.notifications, document, workflow.url_path, actor)
        return document

    async def get_request(self, request_type: RequestType, request_id: int, actor: Optional[User] = None) -> RequestDocument:
        workflow = self._workflow(request_type)
        document = await self._load(workflow, request_id)
        if actor is not None and not can_view(document, actor):
            raise UnauthorizedError(f"You do not have access to this {workflow.title}")
        return document

    async def list_requests(
        self,
        request_type: RequestType,
        actor: User,
        page_index: int = 1,
        page_size: int = 10,
        status: Optional[RequestStatus] = None,
    ) -> Dict[str, Any]:
        """Paginated requests of one type that ``actor`` may see, newest first"""
        workflow = self._workflow(request_type)
        model = workflow.model

        conditions = [
            model.request_type == RequestType(request_type).value,
            model.is_deleted == False,
            visibility_clause(model, actor),
        ]
        if status:
            conditions.append(model.status == RequestStatus(status))

        total_count = await self.session.scalar(
            select(func.count(model.id)).where(*conditions)
        )

        skip = (page_index - 1) * page_size
        documents = await self.session.scalars(
            select(model)
            .where(*conditions)
            .order_by(model.id.desc())
            .offset(skip)
            .limit(page_size)
        )

        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total_count or 0,
            "data": documents.all()
        }

    async def update_request_status(
        self,
        request_type: RequestType,
        request_id: int,
        change: StatusChange,
        actor: User,
    ) -> TransitionResult:
        """Apply a status change, commit it, then notify"""
        try:
            workflow = self._workflow(request_type)
            document = await self._load(workflow, request_id)
            policy = await self._get_policy()

            result = transition(document, change, actor, policy, workflow.kind)
            await self.session.commit()

        except HTTPException:
            await abort_unit_of_work(self.session, actor)
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating status of {request_type} {request_id}: {str(e)}")
            raise InternalServiceError("Error updating request status")

        await self.notifier.dispatch(result.notifications, document, workflow.url_path, actor)
        return result

    async def delete_request(self, request_type: RequestType, request_id: int, actor: User) -> bool:
        """Soft delete by the creator while the request is a draft or rejected"""
        try:
            workflow = self._workflow(request_type)
            document = await self._load(workflow, request_id)

            if document.creator_id != actor.id:
                raise UnauthorizedError(f"Only the creator can delete this {workflow.title}")
            if document.status not in _DELETABLE_STATUSES:
                raise ValidationError(f"Cannot delete a {document.status.value} {workflow.title}")

            document.is_deleted = True
            document.updated_by = actor.id
            await self.session.commit()

            logger.info(f"{workflow.title} {request_id} deleted by user {actor.id}")
            return True

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting {request_type} {request_id}: {str(e)}")
            raise InternalServiceError("Error deleting request")
