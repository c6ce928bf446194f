import logging
from dataclasses import asdict, dataclass
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.models.shared.enums import NotificationReason
from app.services.auth.user_service import UserService
from app.services.notification.recipient_resolver import NotificationPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationRecipient:
    user_id: int
    email: str
    name: str


@dataclass(frozen=True)
class DocumentSummary:
    request_type: str
    document_id: int
    reference: Optional[str]
    title: str
    status: str
    link: str
    header: str
    actor_name: Optional[str] = None


class NotificationTransport:
    """Delivers one notification batch; implementations must not block the caller"""

    def send(self, recipients: List[NotificationRecipient], reason: NotificationReason,
             summary: DocumentSummary) -> None:
        raise NotImplementedError


class CeleryNotificationTransport(NotificationTransport):
    """Queues the email on the notifications worker"""

    def send(self, recipients, reason, summary):
        # Import inside function to avoid circular imports
        from app.workers.celery_tasks.notification_tasks import send_request_notification

        send_request_notification.delay(
            [asdict(recipient) for recipient in recipients],
            NotificationReason(reason).value,
            asdict(summary),
        )


class NotificationService:
    """Turns a notification plan into transport calls, one per batch"""

    def __init__(self, session: AsyncSession, transport: Optional[NotificationTransport] = None):
        self.session = session
        self.transport = transport or CeleryNotificationTransport()
        self.user_service = UserService(session)

    def build_summary(self, document, header: str, url_path: str, actor=None) -> DocumentSummary:
        return DocumentSummary(
            request_type=document.request_type,
            document_id=document.id,
            reference=document.reference,
            title=document.title or document.reference or f"Request {document.id}",
            status=document.status.value if hasattr(document.status, "value") else str(document.status),
            link=f"{settings.BASE_URL.rstrip('/')}/{url_path}/{document.id}",
            header=header,
            actor_name=actor.full_name if actor is not None else None,
        )

    async def dispatch(self, plan: NotificationPlan, document, url_path: str, actor=None) -> int:
        """
        Send every batch of ``plan`` for ``document``.

        Runs after the transition has been committed. Failures are logged with
        their traceback and never raised, so the status change stands.
        Returns the number of recipients handed to the transport.
        """
        if plan.is_empty:
            return 0
        if not settings.NOTIFICATIONS_ENABLED:
            logger.info(f"Notifications disabled, skipping {len(plan.batches)} batch(es) for {document!r}")
            return 0

        sent = 0
        for batch in plan.batches:
            try:
                users = await self.user_service.get_users_by_ids(batch.recipient_ids, active_only=True)
                recipients = [
                    NotificationRecipient(user_id=user.id, email=user.email, name=user.full_name)
                    for user in users
                    if user.email
                ]
                if not recipients:
                    logger.warning(f"No reachable recipients for {batch.reason.value} notification on {document!r}")
                    continue

                summary = self.build_summary(document, batch.header, url_path, actor)
                self.transport.send(recipients, batch.reason, summary)
                sent += len(recipients)
                logger.info(
                    f"Queued {batch.reason.value} notification for {document!r} "
                    f"to users {[r.user_id for r in recipients]}"
                )
            except Exception:
                logger.exception(f"Failed to dispatch {batch.reason.value} notification for {document!r}")
        return sent
