import logging
from typing import List
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InternalServiceError, NotFoundError, UnauthorizedError, ValidationError
from app.models.auth.user import User
from app.models.procurement.purchase_request import PurchaseRequest
from app.models.shared.enums import UserRole
from app.models.workflow.request_comment import RequestComment
from app.models.workflow.request_document import RequestDocument

logger = logging.getLogger(__name__)


def can_comment(document: RequestDocument, user: User) -> bool:
    if user.role == UserRole.SUPER_ADMIN:
        return True
    participants = {document.creator_id, document.reviewed_by, document.approved_by}
    if isinstance(document, PurchaseRequest):
        participants.update({document.finance_reviewer_id, document.procurement_reviewer_id})
    return user.id in participants or user.id in document.copied_to_ids


def visible_comments(document: RequestDocument) -> List[RequestComment]:
    """Comments callers may see, newest first"""
    return document.visible_comments


class CommentService:
    """Comments on request documents; edits and deletes are flags, rows stay"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _find_comment(self, document: RequestDocument, comment_id: int) -> RequestComment:
        for comment in document.comments:
            if comment.id == comment_id and not comment.is_deleted:
                return comment
        raise NotFoundError("Comment not found")

    async def add_comment(self, document: RequestDocument, actor: User, text: str) -> RequestComment:
        try:
            text = (text or "").strip()
            if not text:
                raise ValidationError("Comment text is required")
            if not can_comment(document, actor):
                raise UnauthorizedError("You do not have permission to comment on this request")

            comment = RequestComment(
                user_id=actor.id,
                text=text,
                is_edited=False,
                is_deleted=False,
                created_by=actor.id,
            )
            document.comments.insert(0, comment)
            await self.session.commit()

            logger.info(f"User {actor.id} commented on {document!r}")
            return comment

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error adding comment to {document!r}: {str(e)}")
            raise InternalServiceError("Error adding comment")

    async def update_comment(self, document: RequestDocument, comment_id: int, actor: User, text: str) -> RequestComment:
        try:
            text = (text or "").strip()
            if not text:
                raise ValidationError("Comment text is required")

            comment = self._find_comment(document, comment_id)
            if comment.user_id != actor.id:
                raise UnauthorizedError("You can only edit your own comments")

            comment.text = text
            comment.is_edited = True
            comment.updated_by = actor.id
            await self.session.commit()
            return comment

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating comment {comment_id}: {str(e)}")
            raise InternalServiceError("Error updating comment")

    async def delete_comment(self, document: RequestDocument, comment_id: int, actor: User) -> RequestComment:
        try:
            comment = self._find_comment(document, comment_id)
            if comment.user_id != actor.id:
                raise UnauthorizedError("You can only delete your own comments")

            comment.is_deleted = True
            comment.updated_by = actor.id
            await self.session.commit()

            logger.info(f"Comment {comment_id} on {document!r} soft deleted by user {actor.id}")
            return comment

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting comment {comment_id}: {str(e)}")
            raise InternalServiceError("Error deleting comment")
