import asyncio
from typing import Dict, Optional
import resend
from storefront.common.logging_setup import get_logger
from storefront.config.mail_config import mail_settings

logger = get_logger("storefront.notifications")


class MailDeliveryError(Exception):
    pass


class ResendMailer:
    """Sends html mail through the Resend api from a worker thread; without an api key it only logs."""

    def __init__(self, api_key: Optional[str] = mail_settings.RESEND_API_KEY, sender: str = mail_settings.MAIL_FROM):
        self.api_key = (api_key or "").strip()
        self.sender = sender

    def _payload(self, to: str, subject: str, html: str) -> Dict[str, object]:
        return {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }

    def _send_sync(self, payload: Dict[str, object]):
        # the sdk reads a module level key
        previous_api_key = getattr(resend, "api_key", None)
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(payload)
        finally:
            resend.api_key = previous_api_key

        if not isinstance(response, dict) or not response.get("id"):
            raise MailDeliveryError(f"unexpected resend response: {response!r}")
        return response["id"]

    async def send(self, to: str, subject: str, html: str):
        if not self.api_key:
            logger.info("mail.skipped.no_api_key", extra={"subject": subject})
            return None
        email_id = await asyncio.to_thread(self._send_sync, self._payload(to, subject, html))
        logger.info("mail.sent", extra={"subject": subject, "email_id": email_id})
        return email_id


async def dispatch_email(mailer, to: str, subject: str, html: str):
    """Fire-and-forget send: runs after the response, failures are logged and never raised."""
    try:
        await mailer.send(to, subject, html)
    except Exception:
        logger.exception("mail.dispatch_failed", extra={"subject": subject})
