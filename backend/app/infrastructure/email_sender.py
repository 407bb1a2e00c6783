"""
Email senders behind the EmailSender interface.
"""

import httpx

from app.core.logging import get_logger, mask_email
from app.services.interfaces.email import EmailMessage, EmailSender

logger = get_logger(__name__)


class ResendEmailSender(EmailSender):
    """Sends through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._sender = sender
        self._api_url = api_url
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def send(self, message: EmailMessage) -> None:
        response = await self._client.post(
            self._api_url,
            json={
                "from": self._sender,
                "to": [message.to],
                "subject": message.subject,
                "text": message.text,
            },
        )
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


class LoggingEmailSender(EmailSender):
    """Used when no provider is configured: the message is logged, not sent."""

    async def send(self, message: EmailMessage) -> None:
        logger.info("email_not_sent_no_provider", to=mask_email(message.to), subject=message.subject)
