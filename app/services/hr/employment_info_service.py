import logging
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InternalServiceError, UnauthorizedError
from app.models.auth.user import User
from app.models.shared.enums import UserRole
from app.schemas.system.system_settings_schema import PermissionDecision, SystemSettingsSnapshot
from app.services.auth.user_service import UserService

logger = logging.getLogger(__name__)

_LOCK_ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


def can_update_employment_info(user: User, snapshot: SystemSettingsSnapshot) -> PermissionDecision:
    """The per-user lock wins over the global one"""
    if user.is_employment_info_locked:
        return PermissionDecision(allowed=False, reason="Your employment information is locked")
    if snapshot.global_employment_info_lock:
        return PermissionDecision(allowed=False, reason="Employment information updates are currently locked")
    return PermissionDecision(allowed=True)


class EmploymentInfoService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_service = UserService(session)

    async def toggle_user_lock(self, user_id: int, locked: bool, actor: User) -> User:
        """Lock or unlock one user's employment information"""
        try:
            if actor.role not in _LOCK_ADMIN_ROLES:
                raise UnauthorizedError("Only administrators can lock employment information")

            user = await self.user_service.get_user_or_404(user_id)
            user.is_employment_info_locked = locked
            user.updated_by = actor.id
            await self.session.commit()

            logger.info(f"Employment info for user {user_id} {'locked' if locked else 'unlocked'} by user {actor.id}")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error toggling employment info lock for user {user_id}: {str(e)}")
            raise InternalServiceError("Error updating employment info lock")
