import requests
import logging
from typing import Dict, Optional, Tuple
from portfolio_manager.core.config import BREVO_API_KEY

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class EmailService:
    """
    Abstract email service interface. Implementations should provide send_email method.
    """

    def send_email(
        self,
        to: str,
        template_id: int,
        params: Dict,
    ) -> Tuple[bool, Optional[str]]:
        """
        Send email and return success status with optional error message.

        Returns:
            Tuple[bool, Optional[str]]: (success, error_message)
        """
        raise NotImplementedError("send_email must be implemented by subclasses")


class BrevoAPIEmailService(EmailService):
    """
    Email service implementation using the Brevo transactional template API.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: int = 30):
        self.api_key = api_key or BREVO_API_KEY
        self.timeout = timeout
        if not self.api_key:
            logger.warning("Brevo API key is not configured")

    def send_email(
        self,
        to: str,
        template_id: int,
        params: Dict,
    ) -> Tuple[bool, Optional[str]]:
        """
        Send a transactional email using a Brevo template.

        Returns:
            Tuple[bool, Optional[str]]: (success, error_message)
            - (True, None) on success
            - (False, error_message) on failure
        """
        if not self.api_key:
            return False, "Brevo API key is not configured"

        payload = {
            "templateId": template_id,
            "to": [{"email": to}],
            "params": params,
        }
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.api_key,
        }

        logger.info(f"Sending template {template_id} via Brevo to: {to}")
        logger.debug(f"Brevo API payload: {payload}")

        try:
            response = requests.post(
                BREVO_SEND_URL, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            return False, "Email service timeout - request took too long"
        except requests.exceptions.ConnectionError:
            return False, "Email service connection error - unable to reach Brevo"
        except requests.exceptions.RequestException as e:
            return False, f"Email service request failed: {e}"

        logger.debug(f"Brevo API response: {response.status_code} {response.text}")

        # Brevo answers 201 with a messageId for accepted emails
        if response.status_code != 201:
            return False, f"Brevo API error: {response.status_code} - {response.text}"

        logger.info(f"Email accepted, messageId: {response.json().get('messageId')}")
        return True, None


email_service: EmailService = BrevoAPIEmailService()
