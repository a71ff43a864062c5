import logging

from portfolio_manager.service.email_service import email_service
from portfolio_manager.core.config import FRONTEND_URL, PORTFOLIO_INVITE_TEMPLATE_ID

logger = logging.getLogger(__name__)


def invitation_link(invite_token: str) -> str:
    return f"{FRONTEND_URL}/invite/accept/{invite_token}"


def send_portfolio_invitation_email(
    email: str, invite_token: str, invited_by_name: str
) -> bool:
    """
    Send portfolio invitation email

    Args:
        email: Recipient email address
        invite_token: Invitation token for the accept link
        invited_by_name: Display name of the portfolio owner

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    logger.info(f"Sending portfolio invitation email to: {email}")

    success, error_message = email_service.send_email(
        to=email,
        template_id=PORTFOLIO_INVITE_TEMPLATE_ID,
        params={
            "invite_link": invitation_link(invite_token),
            "invited_by_name": invited_by_name,
        },
    )

    if not success:
        logger.error(f"Failed to send invitation email to {email}: {error_message}")
        return False

    logger.info(f"Invitation email sent successfully to: {email}")
    return True
