import logging
from typing import List, Optional, Type
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InternalServiceError, NotFoundError, UnauthorizedError, ValidationError
from app.models.auth.user import User
from app.models.shared.enums import RequestType
from app.models.workflow.request_document import RequestDocument
from app.services.auth.user_service import UserService
from app.services.notification.notification_service import NotificationService
from app.services.notification.recipient_resolver import copy_plan
from app.services.workflow.registry import get_workflow

logger = logging.getLogger(__name__)


class BaseCopyService:
    """Share a request with extra users; only the creator may do it"""

    def __init__(
        self,
        session: AsyncSession,
        model: Type[RequestDocument],
        model_name: str,
        url_path: str,
        notifier: Optional[NotificationService] = None,
    ):
        self.session = session
        self.model = model
        self.model_name = model_name
        self.url_path = url_path
        self.notifier = notifier or NotificationService(session)
        self.user_service = UserService(session)

    async def copy_document(self, document_id: int, actor: User, recipient_ids: List[int]) -> RequestDocument:
        try:
            if not isinstance(recipient_ids, (list, tuple)) or not recipient_ids:
                raise ValidationError("Recipients array is required")
            if not all(isinstance(recipient_id, int) for recipient_id in recipient_ids):
                raise ValidationError("Recipients must be user IDs")

            result = await self.session.execute(
                select(self.model).where(
                    self.model.id == document_id,
                    self.model.is_deleted == False
                )
            )
            document = result.scalar_one_or_none()
            if not document:
                raise NotFoundError(f"{self.model_name} not found")

            if document.creator_id != actor.id:
                raise UnauthorizedError(f"Unauthorized: Only the creator can share this {self.model_name}")

            recipients = await self.user_service.get_users_by_ids(recipient_ids)
            missing = set(recipient_ids) - {user.id for user in recipients}
            if missing:
                raise NotFoundError(f"Users not found: {sorted(missing)}")

            already_copied = set(document.copied_to_ids)
            new_recipients = [user for user in recipients if user.id not in already_copied]
            document.copied_to.extend(new_recipients)
            await self.session.commit()

            logger.info(
                f"{self.model_name} {document.id} copied to users {[u.id for u in new_recipients]} by user {actor.id}"
            )

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error copying {self.model_name} {document_id}: {str(e)}")
            raise InternalServiceError(f"Error copying {self.model_name}")

        if new_recipients:
            plan = copy_plan([user.id for user in new_recipients], actor.id, self.model_name)
            await self.notifier.dispatch(plan, document, self.url_path, actor)

        return document


def copy_service_for(
    request_type: RequestType,
    session: AsyncSession,
    notifier: Optional[NotificationService] = None,
) -> BaseCopyService:
    workflow = get_workflow(request_type)
    return BaseCopyService(session, workflow.model, workflow.title, workflow.url_path, notifier)
