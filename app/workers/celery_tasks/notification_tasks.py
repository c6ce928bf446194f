"""
Notification tasks - email delivery for workflow status changes and copies
"""
import logging
from typing import Any, Dict, List
from app.core.celery_app import celery_app
from app.models.shared.enums import NotificationReason

logger = logging.getLogger(__name__)


@celery_app.task(name="app.workers.celery_tasks.notification_tasks.send_request_notification")
def send_request_notification(recipients: List[Dict[str, Any]], reason: str, summary: Dict[str, Any]) -> int:
    """Send one email per recipient; returns how many were delivered"""
    # Import inside function to avoid circular imports
    from app.services.communication.email_service import EmailService

    email_service = EmailService()
    subject = summary.get("header") or f"{summary.get('title')} update"
    delivered = 0

    for recipient in recipients:
        try:
            if reason == NotificationReason.COPIED.value:
                html_content = email_service.render_copy_notification(recipient, summary)
            else:
                html_content = email_service.render_request_notification(recipient, reason, summary)

            if email_service.send_email(recipient["email"], subject, html_content):
                delivered += 1
        except Exception:
            logger.exception(
                f"Failed to send {reason} notification for {summary.get('request_type')} "
                f"{summary.get('document_id')} to {recipient.get('email')}"
            )

    logger.info(
        f"{reason} notification for {summary.get('request_type')} {summary.get('document_id')}: "
        f"{delivered}/{len(recipients)} delivered"
    )
    return delivered
